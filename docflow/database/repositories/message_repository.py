from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docflow.database.connection import Database
from docflow.database.models import MessageRecord

_MESSAGE_COLUMNS = """
    id, topic, partition_key, body, status, attempts,
    error_message, locked_at, created_at, updated_at
"""


class MessageRepository:
    """Database operations for the channel_messages table."""

    def __init__(self, db: Database, max_attempts: int) -> None:
        self._db = db
        self._max_attempts = max_attempts

    def insert(self, topic: str, partition_key: str, body: dict[str, Any]) -> int:
        """Append a pending message to a topic and return its id."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO channel_messages (topic, partition_key, body)
                    VALUES (%s, %s, %s)
                    RETURNING id
                    """,
                    (topic, partition_key, Jsonb(body)),
                )
                row = cur.fetchone()
            conn.commit()
        assert row is not None
        return int(row[0])

    def claim_next(self, conn: psycopg.Connection[Any], topic: str) -> MessageRecord | None:
        """Claim the oldest deliverable message of a topic.

        A message is deliverable when no earlier message with the same
        partition key is still pending or in flight, which keeps delivery FIFO
        per partition. Uses SELECT FOR UPDATE SKIP LOCKED.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_MESSAGE_COLUMNS}
                FROM channel_messages m
                WHERE m.topic = %s
                  AND m.status = 'pending'
                  AND m.attempts < %s
                  AND NOT EXISTS (
                      SELECT 1
                      FROM channel_messages e
                      WHERE e.topic = m.topic
                        AND e.partition_key = m.partition_key
                        AND e.id < m.id
                        AND e.status IN ('pending', 'processing')
                  )
                ORDER BY m.id
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (topic, self._max_attempts),
            )
            row = cur.fetchone()

        if row is None:
            conn.commit()
            return None

        conn.execute(
            """
            UPDATE channel_messages
            SET status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        record = _message_from_row(row)
        record.status = "processing"
        return record

    def requeue_stale(self, topic: str, visibility_timeout_seconds: int) -> int:
        """Return in-flight messages whose consumer went away to pending.

        Counts as a delivery attempt. Messages that run out of attempts are
        dead-lettered instead.
        """
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE channel_messages
                    SET attempts = attempts + 1,
                        status = CASE WHEN attempts + 1 >= %s THEN 'failed' ELSE 'pending' END,
                        error_message = CASE
                            WHEN attempts + 1 >= %s THEN 'visibility timeout exceeded'
                            ELSE error_message
                        END,
                        locked_at = NULL,
                        updated_at = NOW()
                    WHERE topic = %s
                      AND status = 'processing'
                      AND locked_at < NOW() - make_interval(secs => %s)
                    """,
                    (
                        self._max_attempts,
                        self._max_attempts,
                        topic,
                        visibility_timeout_seconds,
                    ),
                )
                count = cur.rowcount
            conn.commit()
        return count

    def mark_done(self, message_id: int) -> None:
        with self._db.connection() as conn:
            conn.execute(
                """
                UPDATE channel_messages
                SET status = 'done', locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (message_id,),
            )
            conn.commit()

    def mark_failed(self, message_id: int, error: str) -> None:
        """Dead-letter a message."""
        with self._db.connection() as conn:
            conn.execute(
                """
                UPDATE channel_messages
                SET status = 'failed', attempts = attempts + 1, error_message = %s,
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (error, message_id),
            )
            conn.commit()

    def increment_attempts(self, message_id: int, error: str) -> None:
        """Increment attempt count and return the message to pending."""
        with self._db.connection() as conn:
            conn.execute(
                """
                UPDATE channel_messages
                SET attempts = attempts + 1, status = 'pending', error_message = %s,
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (error, message_id),
            )
            conn.commit()

    def find_by_id(self, message_id: int) -> MessageRecord | None:
        """Find a message by ID. Useful for tests."""
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_MESSAGE_COLUMNS} FROM channel_messages WHERE id = %s",
                    (message_id,),
                )
                row = cur.fetchone()
        return _message_from_row(row) if row is not None else None


def _message_from_row(row: dict[str, Any]) -> MessageRecord:
    return MessageRecord(
        id=row["id"],
        topic=row["topic"],
        partition_key=row["partition_key"],
        body=row["body"],
        status=row["status"],
        attempts=row["attempts"],
        error_message=row["error_message"],
        locked_at=row["locked_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
