import os
import uuid
from collections.abc import Generator
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from docflow.channel.channel import MessageChannel
from docflow.config.settings import Settings
from docflow.database.connection import Database
from docflow.database.repositories.message_repository import MessageRepository
from docflow.database.repositories.submission_repository import SubmissionRepository
from docflow.database.schema import apply_schema
from docflow.pipeline.models import AttachmentEntry, InboundDocument
from docflow.pipeline.publisher import EventPublisher


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docflow_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def database(test_settings: Settings) -> Generator[Database, None, None]:
    db = Database(test_settings)
    try:
        db.open()
        apply_schema(db)
    except Exception as e:
        db.close()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to point at one")
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def clean_database(database: Database) -> Database:
    with database.connection() as conn:
        conn.execute("TRUNCATE channel_messages, attachment_sets, submissions RESTART IDENTITY")
        conn.commit()
    return database


@pytest.fixture
def submission_repo(clean_database: Database) -> SubmissionRepository:
    return SubmissionRepository(clean_database)


@pytest.fixture
def message_repo(clean_database: Database) -> MessageRepository:
    return MessageRepository(clean_database, max_attempts=2)


@pytest.fixture
def publisher(message_repo: MessageRepository) -> EventPublisher:
    return EventPublisher(MessageChannel(message_repo), MagicMock())


@pytest.fixture
def inbound_document() -> InboundDocument:
    return InboundDocument(
        id=f"it-{uuid.uuid4()}",
        subject="Documents",
        sender="alice@example.com",
        body="Attached.",
        received_at=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
        attachments=(
            AttachmentEntry("invoice.pdf", "application/pdf", "invoice.pdf"),
            AttachmentEntry("notes.txt", "text/plain", "notes.txt"),
        ),
    )
