from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from docflow.pipeline.models import AttachmentEntry


@dataclass
class SubmissionRecord:
    """Represents a row from the submissions table."""

    id: str
    subject: str
    sender: str
    body: str
    received_at: datetime
    status: str
    status_sequence: int
    attachment_set_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class AttachmentSetRecord:
    """Represents a row from the attachment_sets table."""

    id: int
    submission_id: str
    entries: list[AttachmentEntry] = field(default_factory=list)
    applied_sequence: int = 0


@dataclass
class SubmissionView:
    """A submission joined with its resolved attachment set."""

    submission: SubmissionRecord
    attachments: list[AttachmentEntry] = field(default_factory=list)


@dataclass
class MessageRecord:
    """Represents a row from the channel_messages table."""

    id: int
    topic: str
    partition_key: str
    body: dict[str, Any]
    status: str
    attempts: int
    error_message: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
