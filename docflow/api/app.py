"""Read-only query interface over the document store."""

from typing import Any

from fastapi import FastAPI, HTTPException

from docflow.database.models import SubmissionView
from docflow.database.repositories.submission_repository import SubmissionRepository
from docflow.pipeline.codec import attachment_to_dict


def view_to_dict(view: SubmissionView) -> dict[str, Any]:
    submission = view.submission
    return {
        "id": submission.id,
        "subject": submission.subject,
        "sender": submission.sender,
        "body": submission.body,
        "received_at": submission.received_at.isoformat(),
        "status": submission.status,
        "attachments": [attachment_to_dict(entry) for entry in view.attachments],
        "created_at": submission.created_at.isoformat() if submission.created_at else None,
        "updated_at": submission.updated_at.isoformat() if submission.updated_at else None,
    }


def create_app(submission_repo: SubmissionRepository) -> FastAPI:
    """Build the app around an already opened repository."""
    app = FastAPI(title="docflow", docs_url="/docs")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/submissions")
    def list_submissions() -> list[dict[str, Any]]:
        return [view_to_dict(view) for view in submission_repo.list_with_attachments()]

    @app.get("/submissions/{submission_id}")
    def get_submission(submission_id: str) -> dict[str, Any]:
        view = submission_repo.find_view(submission_id)
        if view is None:
            raise HTTPException(status_code=404, detail=f"Submission {submission_id} not found")
        return view_to_dict(view)

    return app
