from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

UNKNOWN_CATEGORY = "unknown"


class SubmissionStatus(str, Enum):
    """Values the submission ``status`` column can hold."""

    INGESTION_IN_PROGRESS = "ingestion_in_progress"
    INGESTION_DONE = "ingestion_done"
    INGESTION_COMPLETED = "ingestion_completed"
    EXTRACTION_COMPLETED = "extraction_completed"
    CLASSIFICATION_COMPLETED = "classification_completed"
    INGESTION_FAILED = "ingestion_failed"
    EXTRACTION_FAILED = "extraction_failed"
    CLASSIFICATION_FAILED = "classification_failed"


class EnvelopeKind(str, Enum):
    """Stage markers published on the common channel."""

    INGESTION_COMPLETED = "ingestion_completed"
    EXTRACTION_COMPLETED = "extraction_completed"
    CLASSIFICATION_COMPLETED = "classification_completed"
    INGESTION_FAILED = "ingestion_failed"
    EXTRACTION_FAILED = "extraction_failed"
    CLASSIFICATION_FAILED = "classification_failed"


# Position of each status in the linear pipeline. A failure marker shares the
# position of the stage that failed, so a later success on redelivery wins.
STAGE_SEQUENCE: dict[str, int] = {
    SubmissionStatus.INGESTION_IN_PROGRESS.value: 0,
    SubmissionStatus.INGESTION_DONE.value: 1,
    SubmissionStatus.INGESTION_FAILED.value: 1,
    SubmissionStatus.INGESTION_COMPLETED.value: 2,
    SubmissionStatus.EXTRACTION_FAILED.value: 2,
    SubmissionStatus.EXTRACTION_COMPLETED.value: 3,
    SubmissionStatus.CLASSIFICATION_FAILED.value: 3,
    SubmissionStatus.CLASSIFICATION_COMPLETED.value: 4,
}


def sequence_of(status: str) -> int:
    return STAGE_SEQUENCE[status]


@dataclass(frozen=True)
class AttachmentEntry:
    """One file of a submission and whatever the stages learned about it."""

    filename: str
    content_type: str
    content_location: str
    extracted_text: str | None = None
    classification: str | None = None
    confidence: float | None = None
    processing_error: str | None = None

    def with_text(self, text: str, error: str | None = None) -> "AttachmentEntry":
        return replace(self, extracted_text=text, processing_error=error)

    def with_classification(
        self,
        classification: str,
        confidence: float,
        error: str | None = None,
    ) -> "AttachmentEntry":
        return replace(
            self,
            classification=classification,
            confidence=confidence,
            processing_error=error,
        )

    def stripped(self) -> "AttachmentEntry":
        """Keep only the fields the extraction stage needs."""
        return AttachmentEntry(
            filename=self.filename,
            content_type=self.content_type,
            content_location=self.content_location,
        )


@dataclass(frozen=True)
class SubmissionPayload:
    """Snapshot of a submission carried by every envelope."""

    subject: str
    sender: str
    body: str
    received_at: datetime
    attachments: tuple[AttachmentEntry, ...] = ()

    def with_attachments(
        self, attachments: tuple[AttachmentEntry, ...] | list[AttachmentEntry]
    ) -> "SubmissionPayload":
        return replace(self, attachments=tuple(attachments))


@dataclass(frozen=True)
class Envelope:
    """Immutable inter-stage message. ``id`` is the submission id."""

    id: str
    kind: EnvelopeKind
    payload: SubmissionPayload
    sequence: int = field(default=-1)

    def __post_init__(self) -> None:
        if self.sequence < 0:
            object.__setattr__(self, "sequence", sequence_of(self.kind.value))


@dataclass(frozen=True)
class StageRequest:
    """Input of the extraction and classification stages."""

    submission_id: str
    payload: SubmissionPayload


@dataclass(frozen=True)
class InboundDocument:
    """A "document found" event produced by the mailbox collaborator."""

    id: str
    subject: str
    sender: str
    body: str
    received_at: datetime
    attachments: tuple[AttachmentEntry, ...] = ()

    def to_payload(self) -> SubmissionPayload:
        return SubmissionPayload(
            subject=self.subject,
            sender=self.sender,
            body=self.body,
            received_at=self.received_at,
            attachments=self.attachments,
        )
