from collections.abc import Sequence
from datetime import datetime, timezone

import pytest

from docflow.database.models import AttachmentSetRecord, SubmissionRecord
from docflow.pipeline.models import (
    STAGE_SEQUENCE,
    AttachmentEntry,
    InboundDocument,
    SubmissionStatus,
)


class InMemorySubmissionRepository:
    """Dict-backed stand-in for SubmissionRepository with the same guards."""

    def __init__(self) -> None:
        self.submissions: dict[str, SubmissionRecord] = {}
        self.attachment_sets: dict[int, AttachmentSetRecord] = {}
        self._next_set_id = 1

    def create_if_absent(self, document: InboundDocument) -> tuple[SubmissionRecord, bool]:
        existing = self.submissions.get(document.id)
        if existing is not None:
            return existing, False
        status = SubmissionStatus.INGESTION_IN_PROGRESS.value
        record = SubmissionRecord(
            id=document.id,
            subject=document.subject,
            sender=document.sender,
            body=document.body,
            received_at=document.received_at,
            status=status,
            status_sequence=STAGE_SEQUENCE[status],
        )
        self.submissions[document.id] = record
        return record, True

    def attach_entries(self, submission_id: str, entries: Sequence[AttachmentEntry]) -> int:
        for attachment_set in self.attachment_sets.values():
            if attachment_set.submission_id == submission_id:
                set_id = attachment_set.id
                break
        else:
            set_id = self._next_set_id
            self._next_set_id += 1
            self.attachment_sets[set_id] = AttachmentSetRecord(
                id=set_id, submission_id=submission_id, entries=list(entries)
            )
        record = self.submissions[submission_id]
        record.attachment_set_id = set_id
        self.update_status(
            submission_id,
            SubmissionStatus.INGESTION_DONE.value,
            STAGE_SEQUENCE[SubmissionStatus.INGESTION_DONE.value],
        )
        return set_id

    def find_by_id(self, submission_id: str) -> SubmissionRecord | None:
        return self.submissions.get(submission_id)

    def find_attachment_set(self, attachment_set_id: int) -> AttachmentSetRecord | None:
        return self.attachment_sets.get(attachment_set_id)

    def update_status(self, submission_id: str, status: str, sequence: int) -> bool:
        record = self.submissions.get(submission_id)
        if record is None or record.status_sequence > sequence:
            return False
        record.status = status
        record.status_sequence = sequence
        return True

    def replace_attachments(
        self, attachment_set_id: int, entries: Sequence[AttachmentEntry], sequence: int
    ) -> bool:
        attachment_set = self.attachment_sets.get(attachment_set_id)
        if attachment_set is None or attachment_set.applied_sequence > sequence:
            return False
        attachment_set.entries = list(entries)
        attachment_set.applied_sequence = sequence
        return True


@pytest.fixture
def submission_repo() -> InMemorySubmissionRepository:
    return InMemorySubmissionRepository()


@pytest.fixture
def inbound_document() -> InboundDocument:
    return InboundDocument(
        id="id-1",
        subject="Documents for onboarding",
        sender="alice@example.com",
        body="Please find the files attached.",
        received_at=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
        attachments=(
            AttachmentEntry("invoice.pdf", "application/pdf", "https://files.example.com/a"),
            AttachmentEntry("scan.png", "image/png", "https://files.example.com/b"),
        ),
    )
