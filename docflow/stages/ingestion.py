from typing import Any

from docflow.channel.topics import EXTRACTION_INIT
from docflow.database.repositories.submission_repository import SubmissionRepository
from docflow.logging.logger import Log
from docflow.pipeline.codec import inbound_from_dict
from docflow.pipeline.models import Envelope, EnvelopeKind, InboundDocument, StageRequest
from docflow.pipeline.publisher import EventPublisher
from docflow.stages.base import Stage


class IngestionStage(Stage):
    """Persists an inbound document and hands it to extraction.

    Redelivery of the same id never creates a second submission: the stored
    record is reused and the downstream events are emitted again.
    """

    name = "ingestion"

    def __init__(self, submission_repo: SubmissionRepository, publisher: EventPublisher) -> None:
        self._submission_repo = submission_repo
        self._publisher = publisher

    def handle(self, body: dict[str, Any]) -> None:
        self.ingest(inbound_from_dict(body))

    def ingest(self, document: InboundDocument) -> Envelope:
        record, created = self._submission_repo.create_if_absent(document)
        if created or record.attachment_set_id is None:
            self._submission_repo.attach_entries(document.id, document.attachments)
            Log.info(
                f"Stored submission with {len(document.attachments)} attachments",
                submission_id=document.id,
            )
        else:
            Log.info(
                "Submission already ingested, re-emitting downstream events",
                submission_id=document.id,
            )

        payload = document.to_payload().with_attachments(
            [entry.stripped() for entry in document.attachments]
        )
        envelope = Envelope(
            id=document.id,
            kind=EnvelopeKind.INGESTION_COMPLETED,
            payload=payload,
        )
        self._publisher.emit(
            envelope,
            next_topic=EXTRACTION_INIT,
            next_request=StageRequest(submission_id=document.id, payload=payload),
        )
        Log.info("Ingestion completed", submission_id=document.id)
        return envelope
