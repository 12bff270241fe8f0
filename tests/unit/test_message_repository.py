from unittest.mock import MagicMock

from docflow.database.repositories.message_repository import MessageRepository


def _make_row(**overrides: object) -> dict:
    row = {
        "id": 3,
        "topic": "ocr.init",
        "partition_key": "id-1",
        "body": {"submission_id": "id-1"},
        "status": "pending",
        "attempts": 0,
        "error_message": None,
        "locked_at": None,
        "created_at": None,
        "updated_at": None,
    }
    row.update(overrides)
    return row


def _mock_connection() -> tuple[MagicMock, MagicMock, MagicMock]:
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_db = MagicMock()
    mock_db.connection.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_db.connection.return_value.__exit__ = MagicMock(return_value=False)
    return mock_db, mock_conn, mock_cursor


class TestInsert:
    def test_returns_new_id(self) -> None:
        mock_db, mock_conn, mock_cursor = _mock_connection()
        mock_cursor.fetchone.return_value = (42,)

        message_id = MessageRepository(mock_db, 3).insert("ocr.init", "id-1", {"a": 1})

        assert message_id == 42
        _sql, params = mock_cursor.execute.call_args.args
        assert params[:2] == ("ocr.init", "id-1")
        assert params[2].obj == {"a": 1}
        mock_conn.commit.assert_called_once()


class TestClaimNext:
    def test_returns_none_when_nothing_pending(self) -> None:
        _db, mock_conn, mock_cursor = _mock_connection()
        mock_cursor.fetchone.return_value = None

        assert MessageRepository(MagicMock(), 3).claim_next(mock_conn, "ocr.init") is None
        mock_conn.commit.assert_called_once()

    def test_marks_claimed_message_processing(self) -> None:
        _db, mock_conn, mock_cursor = _mock_connection()
        mock_cursor.fetchone.return_value = _make_row()

        message = MessageRepository(MagicMock(), 3).claim_next(mock_conn, "ocr.init")

        assert message is not None
        assert message.status == "processing"
        assert message.body == {"submission_id": "id-1"}
        update_sql, params = mock_conn.execute.call_args.args
        assert "status = 'processing'" in update_sql
        assert params == (3,)

    def test_query_enforces_partition_order_and_skip_locked(self) -> None:
        _db, mock_conn, mock_cursor = _mock_connection()
        mock_cursor.fetchone.return_value = None

        MessageRepository(MagicMock(), 5).claim_next(mock_conn, "ocr.init")

        sql, params = mock_cursor.execute.call_args.args
        assert "FOR UPDATE SKIP LOCKED" in sql
        assert "NOT EXISTS" in sql
        assert params == ("ocr.init", 5)


class TestAcknowledgement:
    def test_mark_done(self) -> None:
        mock_db, mock_conn, _cursor = _mock_connection()
        MessageRepository(mock_db, 3).mark_done(3)
        sql, params = mock_conn.execute.call_args.args
        assert "status = 'done'" in sql
        assert params == (3,)

    def test_increment_attempts_returns_to_pending(self) -> None:
        mock_db, mock_conn, _cursor = _mock_connection()
        MessageRepository(mock_db, 3).increment_attempts(3, "boom")
        sql, params = mock_conn.execute.call_args.args
        assert "status = 'pending'" in sql
        assert params == ("boom", 3)

    def test_mark_failed_dead_letters(self) -> None:
        mock_db, mock_conn, _cursor = _mock_connection()
        MessageRepository(mock_db, 3).mark_failed(3, "boom")
        sql, params = mock_conn.execute.call_args.args
        assert "status = 'failed'" in sql
        assert params == ("boom", 3)

    def test_requeue_stale_returns_count(self) -> None:
        mock_db, _conn, mock_cursor = _mock_connection()
        mock_cursor.rowcount = 2

        count = MessageRepository(mock_db, 3).requeue_stale("ocr.init", 300)

        assert count == 2
        _sql, params = mock_cursor.execute.call_args.args
        assert params == (3, 3, "ocr.init", 300)
