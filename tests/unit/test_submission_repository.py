from datetime import datetime, timezone
from unittest.mock import MagicMock

import psycopg
import pytest

from docflow.database.repositories.submission_repository import SubmissionRepository
from docflow.pipeline.exceptions import PersistenceError
from docflow.pipeline.models import AttachmentEntry, InboundDocument


def _make_row(**overrides: object) -> dict:
    row = {
        "id": "id-1",
        "subject": "Hello",
        "sender": "alice@example.com",
        "body": "See attached",
        "received_at": datetime(2024, 5, 1, tzinfo=timezone.utc),
        "status": "ingestion_in_progress",
        "status_sequence": 0,
        "attachment_set_id": None,
        "created_at": datetime(2024, 5, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 5, 1, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


def _mock_connection() -> tuple[MagicMock, MagicMock, MagicMock]:
    """Wire up a mock database + connection + cursor and return all three."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_db = MagicMock()
    mock_db.connection.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_db.connection.return_value.__exit__ = MagicMock(return_value=False)
    return mock_db, mock_conn, mock_cursor


def _document() -> InboundDocument:
    return InboundDocument(
        id="id-1",
        subject="Hello",
        sender="alice@example.com",
        body="See attached",
        received_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        attachments=(AttachmentEntry("a.pdf", "application/pdf", "loc"),),
    )


class TestCreateIfAbsent:
    def test_returns_created_record(self) -> None:
        mock_db, mock_conn, mock_cursor = _mock_connection()
        mock_cursor.fetchone.return_value = _make_row()

        record, created = SubmissionRepository(mock_db).create_if_absent(_document())

        assert created is True
        assert record.id == "id-1"
        assert record.status == "ingestion_in_progress"
        mock_conn.commit.assert_called_once()

    def test_returns_existing_record_on_conflict(self) -> None:
        mock_db, _conn, mock_cursor = _mock_connection()
        mock_cursor.fetchone.side_effect = [
            None,
            _make_row(status="extraction_completed", status_sequence=3, attachment_set_id=7),
        ]

        record, created = SubmissionRepository(mock_db).create_if_absent(_document())

        assert created is False
        assert record.attachment_set_id == 7
        assert mock_cursor.execute.call_count == 2

    def test_database_error_is_wrapped(self) -> None:
        mock_db, _conn, mock_cursor = _mock_connection()
        mock_cursor.execute.side_effect = psycopg.OperationalError("down")

        with pytest.raises(PersistenceError, match="Failed to create submission id-1"):
            SubmissionRepository(mock_db).create_if_absent(_document())


class TestAttachEntries:
    def test_returns_new_set_id_and_links_it(self) -> None:
        mock_db, mock_conn, mock_cursor = _mock_connection()
        mock_cursor.fetchone.return_value = (5,)

        set_id = SubmissionRepository(mock_db).attach_entries("id-1", _document().attachments)

        assert set_id == 5
        update_sql, params = mock_cursor.execute.call_args.args
        assert "UPDATE submissions" in update_sql
        assert params[0] == 5
        assert params[-1] == "id-1"
        mock_conn.commit.assert_called_once()

    def test_reuses_existing_set(self) -> None:
        mock_db, _conn, mock_cursor = _mock_connection()
        mock_cursor.fetchone.side_effect = [None, (9,)]

        set_id = SubmissionRepository(mock_db).attach_entries("id-1", [])

        assert set_id == 9


class TestGuardedWrites:
    def test_update_status_reports_applied(self) -> None:
        mock_db, _conn, mock_cursor = _mock_connection()
        mock_cursor.rowcount = 1

        applied = SubmissionRepository(mock_db).update_status("id-1", "extraction_completed", 3)

        assert applied is True
        sql, params = mock_cursor.execute.call_args.args
        assert "status_sequence <= %s" in sql
        assert params == ("extraction_completed", 3, "id-1", 3)

    def test_update_status_reports_stale_or_missing(self) -> None:
        mock_db, _conn, mock_cursor = _mock_connection()
        mock_cursor.rowcount = 0

        assert SubmissionRepository(mock_db).update_status("id-1", "ingestion_completed", 2) is False

    def test_replace_attachments_serializes_entries(self) -> None:
        mock_db, _conn, mock_cursor = _mock_connection()
        mock_cursor.rowcount = 1
        entry = AttachmentEntry("a.pdf", "application/pdf", "loc", extracted_text="hi")

        applied = SubmissionRepository(mock_db).replace_attachments(4, [entry], 3)

        assert applied is True
        sql, params = mock_cursor.execute.call_args.args
        assert "applied_sequence <= %s" in sql
        assert params[0].obj[0]["extracted_text"] == "hi"
        assert params[1:] == (3, 4, 3)

    def test_replace_attachments_error_is_wrapped(self) -> None:
        mock_db, _conn, mock_cursor = _mock_connection()
        mock_cursor.execute.side_effect = psycopg.OperationalError("down")

        with pytest.raises(PersistenceError, match="attachment set 4"):
            SubmissionRepository(mock_db).replace_attachments(4, [], 3)


class TestReads:
    def test_find_by_id_returns_none_when_missing(self) -> None:
        mock_db, _conn, mock_cursor = _mock_connection()
        mock_cursor.fetchone.return_value = None

        assert SubmissionRepository(mock_db).find_by_id("ghost") is None

    def test_find_attachment_set_decodes_entries(self) -> None:
        mock_db, _conn, mock_cursor = _mock_connection()
        mock_cursor.fetchone.return_value = {
            "id": 4,
            "submission_id": "id-1",
            "applied_sequence": 2,
            "entries": [
                {"filename": "a.pdf", "content_type": "application/pdf", "content_location": "loc"}
            ],
        }

        attachment_set = SubmissionRepository(mock_db).find_attachment_set(4)

        assert attachment_set.applied_sequence == 2
        assert attachment_set.entries[0].filename == "a.pdf"

    def test_list_with_attachments_resolves_sets(self) -> None:
        mock_db, _conn, mock_cursor = _mock_connection()
        mock_cursor.fetchall.return_value = [
            _make_row(
                attachment_set_id=4,
                entries=[
                    {
                        "filename": "a.pdf",
                        "content_type": "application/pdf",
                        "content_location": "loc",
                        "classification": "invoice",
                        "confidence": 0.9,
                    }
                ],
            ),
            _make_row(id="id-2", entries=None),
        ]

        views = SubmissionRepository(mock_db).list_with_attachments()

        assert [v.submission.id for v in views] == ["id-1", "id-2"]
        assert views[0].attachments[0].classification == "invoice"
        assert views[1].attachments == []

    def test_corrupt_stored_entries_raise_persistence_error(self) -> None:
        mock_db, _conn, mock_cursor = _mock_connection()
        mock_cursor.fetchone.return_value = _make_row(entries="garbage")

        with pytest.raises(PersistenceError, match="corrupt"):
            SubmissionRepository(mock_db).find_view("id-1")
