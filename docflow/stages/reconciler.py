from typing import Any

from docflow.database.models import SubmissionRecord
from docflow.database.repositories.submission_repository import SubmissionRepository
from docflow.logging.logger import Log
from docflow.pipeline.codec import envelope_from_dict
from docflow.pipeline.exceptions import ReconciliationMiss
from docflow.pipeline.models import Envelope
from docflow.stages.base import Stage


class StatusReconciler(Stage):
    """Mirrors every pipeline envelope into the document store.

    Writes carry the envelope's sequence, so envelopes may arrive in any
    order: an older envelope never overwrites what a later stage stored.
    """

    name = "reconciler"

    def __init__(self, submission_repo: SubmissionRepository) -> None:
        self._submission_repo = submission_repo

    def handle(self, body: dict[str, Any]) -> None:
        self.reconcile(envelope_from_dict(body))

    def reconcile(self, envelope: Envelope) -> bool:
        """Apply an envelope's status and attachment list.

        Returns:
            False when the submission is unknown or the envelope was stale.
        """
        submission_id = envelope.id
        status_applied = self._submission_repo.update_status(
            submission_id, envelope.kind.value, envelope.sequence
        )

        try:
            record = self._load_submission(submission_id)
        except ReconciliationMiss as miss:
            Log.info(str(miss), submission_id=submission_id)
            return False

        if record.attachment_set_id is None:
            Log.warning(
                "Submission has no attachment set yet, status only",
                submission_id=submission_id,
            )
            return status_applied

        entries_applied = self._submission_repo.replace_attachments(
            record.attachment_set_id, envelope.payload.attachments, envelope.sequence
        )
        if not (status_applied or entries_applied):
            Log.info(
                f"Ignored stale {envelope.kind.value} envelope",
                submission_id=submission_id,
            )
            return False

        Log.info(
            f"Reconciled {envelope.kind.value} with {len(envelope.payload.attachments)} attachments",
            submission_id=submission_id,
        )
        return True

    def _load_submission(self, submission_id: str) -> SubmissionRecord:
        record = self._submission_repo.find_by_id(submission_id)
        if record is None:
            raise ReconciliationMiss(f"No submission {submission_id}, nothing to reconcile")
        return record
