from collections.abc import Sequence
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docflow.database.connection import Database
from docflow.database.models import AttachmentSetRecord, SubmissionRecord, SubmissionView
from docflow.pipeline.codec import attachment_to_dict, attachments_from_list
from docflow.pipeline.exceptions import MalformedEnvelopeError, PersistenceError
from docflow.pipeline.models import AttachmentEntry, InboundDocument, SubmissionStatus, sequence_of

_SUBMISSION_COLUMNS = """
    id, subject, sender, body, received_at, status, status_sequence,
    attachment_set_id, created_at, updated_at
"""


class SubmissionRepository:
    """Database operations for the submissions and attachment_sets tables.

    Every psycopg failure is re-raised as PersistenceError so that callers can
    hand the message back to the channel for redelivery.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def create_if_absent(self, document: InboundDocument) -> tuple[SubmissionRecord, bool]:
        """Insert the submission with status ingestion_in_progress.

        Returns:
            The stored record and whether this call created it. An existing row
            with the same id is returned untouched.
        """
        status = SubmissionStatus.INGESTION_IN_PROGRESS.value
        try:
            with self._db.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO submissions
                            (id, subject, sender, body, received_at, status, status_sequence)
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        ON CONFLICT (id) DO NOTHING
                        RETURNING {_SUBMISSION_COLUMNS}
                        """,
                        (
                            document.id,
                            document.subject,
                            document.sender,
                            document.body,
                            document.received_at,
                            status,
                            sequence_of(status),
                        ),
                    )
                    row = cur.fetchone()
                    if row is None:
                        cur.execute(
                            f"SELECT {_SUBMISSION_COLUMNS} FROM submissions WHERE id = %s",
                            (document.id,),
                        )
                        row = cur.fetchone()
                        created = False
                    else:
                        created = True
                conn.commit()
        except psycopg.Error as exc:
            raise PersistenceError(
                f"Failed to create submission {document.id}: {exc}"
            ) from exc

        if row is None:
            raise PersistenceError(f"Submission {document.id} could not be created")
        return _submission_from_row(row), created

    def attach_entries(
        self, submission_id: str, entries: Sequence[AttachmentEntry]
    ) -> int:
        """Create the submission's attachment set, link it and mark ingestion done.

        Safe to repeat: an existing set is kept as is and only re-linked.

        Returns:
            The attachment set id.
        """
        done = SubmissionStatus.INGESTION_DONE.value
        try:
            with self._db.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO attachment_sets (submission_id, entries)
                        VALUES (%s, %s)
                        ON CONFLICT (submission_id) DO NOTHING
                        RETURNING id
                        """,
                        (submission_id, Jsonb([attachment_to_dict(e) for e in entries])),
                    )
                    row = cur.fetchone()
                    if row is None:
                        cur.execute(
                            "SELECT id FROM attachment_sets WHERE submission_id = %s",
                            (submission_id,),
                        )
                        row = cur.fetchone()
                    if row is None:
                        raise PersistenceError(
                            f"Attachment set for {submission_id} could not be created"
                        )
                    attachment_set_id = int(row[0])
                    cur.execute(
                        """
                        UPDATE submissions
                        SET attachment_set_id = %s,
                            status = CASE WHEN status_sequence <= %s THEN %s ELSE status END,
                            status_sequence = GREATEST(status_sequence, %s),
                            updated_at = NOW()
                        WHERE id = %s
                        """,
                        (
                            attachment_set_id,
                            sequence_of(done),
                            done,
                            sequence_of(done),
                            submission_id,
                        ),
                    )
                conn.commit()
        except psycopg.Error as exc:
            raise PersistenceError(
                f"Failed to store attachments for {submission_id}: {exc}"
            ) from exc
        return attachment_set_id

    def find_by_id(self, submission_id: str) -> SubmissionRecord | None:
        try:
            with self._db.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"SELECT {_SUBMISSION_COLUMNS} FROM submissions WHERE id = %s",
                        (submission_id,),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise PersistenceError(f"Failed to load submission {submission_id}: {exc}") from exc
        return _submission_from_row(row) if row is not None else None

    def find_attachment_set(self, attachment_set_id: int) -> AttachmentSetRecord | None:
        try:
            with self._db.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        """
                        SELECT id, submission_id, entries, applied_sequence
                        FROM attachment_sets
                        WHERE id = %s
                        """,
                        (attachment_set_id,),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise PersistenceError(
                f"Failed to load attachment set {attachment_set_id}: {exc}"
            ) from exc
        if row is None:
            return None
        return AttachmentSetRecord(
            id=row["id"],
            submission_id=row["submission_id"],
            entries=list(_entries_from_json(row["entries"])),
            applied_sequence=row["applied_sequence"],
        )

    def update_status(self, submission_id: str, status: str, sequence: int) -> bool:
        """Overwrite status unless the stored one is further along.

        Returns:
            False when the submission is missing or the write was stale.
        """
        try:
            with self._db.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        UPDATE submissions
                        SET status = %s, status_sequence = %s, updated_at = NOW()
                        WHERE id = %s AND status_sequence <= %s
                        """,
                        (status, sequence, submission_id, sequence),
                    )
                    applied = cur.rowcount > 0
                conn.commit()
        except psycopg.Error as exc:
            raise PersistenceError(
                f"Failed to update status of {submission_id}: {exc}"
            ) from exc
        return applied

    def replace_attachments(
        self,
        attachment_set_id: int,
        entries: Sequence[AttachmentEntry],
        sequence: int,
    ) -> bool:
        """Full replace of the set's entries, skipped when a later stage already wrote."""
        try:
            with self._db.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        UPDATE attachment_sets
                        SET entries = %s, applied_sequence = %s, updated_at = NOW()
                        WHERE id = %s AND applied_sequence <= %s
                        """,
                        (
                            Jsonb([attachment_to_dict(e) for e in entries]),
                            sequence,
                            attachment_set_id,
                            sequence,
                        ),
                    )
                    applied = cur.rowcount > 0
                conn.commit()
        except psycopg.Error as exc:
            raise PersistenceError(
                f"Failed to replace attachment set {attachment_set_id}: {exc}"
            ) from exc
        return applied

    def list_with_attachments(self) -> list[SubmissionView]:
        """All submissions, newest first, each with its resolved attachment set."""
        try:
            with self._db.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        """
                        SELECT s.id, s.subject, s.sender, s.body, s.received_at,
                               s.status, s.status_sequence, s.attachment_set_id,
                               s.created_at, s.updated_at, a.entries
                        FROM submissions s
                        LEFT JOIN attachment_sets a ON a.id = s.attachment_set_id
                        ORDER BY s.created_at DESC, s.id
                        """
                    )
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            raise PersistenceError(f"Failed to list submissions: {exc}") from exc
        return [_view_from_row(row) for row in rows]

    def find_view(self, submission_id: str) -> SubmissionView | None:
        try:
            with self._db.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        """
                        SELECT s.id, s.subject, s.sender, s.body, s.received_at,
                               s.status, s.status_sequence, s.attachment_set_id,
                               s.created_at, s.updated_at, a.entries
                        FROM submissions s
                        LEFT JOIN attachment_sets a ON a.id = s.attachment_set_id
                        WHERE s.id = %s
                        """,
                        (submission_id,),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise PersistenceError(f"Failed to load submission {submission_id}: {exc}") from exc
        return _view_from_row(row) if row is not None else None


def _submission_from_row(row: dict[str, Any]) -> SubmissionRecord:
    return SubmissionRecord(
        id=row["id"],
        subject=row["subject"],
        sender=row["sender"],
        body=row["body"],
        received_at=row["received_at"],
        status=row["status"],
        status_sequence=row["status_sequence"],
        attachment_set_id=row["attachment_set_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _view_from_row(row: dict[str, Any]) -> SubmissionView:
    entries = row.get("entries")
    return SubmissionView(
        submission=_submission_from_row(row),
        attachments=list(_entries_from_json(entries)) if entries is not None else [],
    )


def _entries_from_json(raw: Any) -> tuple[AttachmentEntry, ...]:
    try:
        return attachments_from_list(raw)
    except MalformedEnvelopeError as exc:
        raise PersistenceError(f"Stored attachment set is corrupt: {exc}") from exc
