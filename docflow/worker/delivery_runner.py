from typing import Any

from docflow.channel.topics import CLASSIFICATION_INIT, EXTRACTION_INIT, SUBMISSION_FOUND
from docflow.database.models import MessageRecord
from docflow.database.repositories.message_repository import MessageRepository
from docflow.logging.logger import Log
from docflow.pipeline.codec import inbound_from_dict, stage_request_from_dict
from docflow.pipeline.exceptions import MalformedEnvelopeError, PipelineError
from docflow.pipeline.models import Envelope, EnvelopeKind, SubmissionPayload
from docflow.pipeline.publisher import EventPublisher
from docflow.stages.base import Stage

FAILURE_KINDS: dict[str, EnvelopeKind] = {
    SUBMISSION_FOUND: EnvelopeKind.INGESTION_FAILED,
    EXTRACTION_INIT: EnvelopeKind.EXTRACTION_FAILED,
    CLASSIFICATION_INIT: EnvelopeKind.CLASSIFICATION_FAILED,
}


class DeliveryRunner:
    """Run one message through a stage, catch exceptions, and apply redelivery logic."""

    def __init__(
        self,
        stage: Stage,
        message_repo: MessageRepository,
        max_attempts: int,
        failure_publisher: EventPublisher | None = None,
    ) -> None:
        self._stage = stage
        self._message_repo = message_repo
        self._max_attempts = max_attempts
        self._failure_publisher = failure_publisher

    def run(self, message: MessageRecord) -> bool:
        """Deliver a single message. Returns True when the stage succeeded."""
        Log.info(
            f"Delivering message {message.id} to {self._stage.name} (attempt {message.attempts + 1})",
            topic=message.topic,
            message_id=message.id,
            submission_id=message.partition_key,
        )
        try:
            self._stage.handle(message.body)
        except Exception as exc:
            self._handle_failure(message, exc)
            return False
        self._message_repo.mark_done(message.id)
        return True

    def _handle_failure(self, message: MessageRecord, exc: Exception) -> None:
        """Increment attempts; dead-letter if at max, otherwise back to pending."""
        Log.error(
            f"Message {message.id} failed: {exc}",
            topic=message.topic,
            message_id=message.id,
            submission_id=message.partition_key,
        )
        if message.attempts + 1 >= self._max_attempts:
            self._message_repo.mark_failed(message.id, str(exc))
            Log.error(
                f"Message {message.id} dead-lettered after {message.attempts + 1} attempts",
                topic=message.topic,
                message_id=message.id,
                submission_id=message.partition_key,
            )
            self._publish_failure_marker(message)
        else:
            self._message_repo.increment_attempts(message.id, str(exc))
            Log.warning(
                f"Message {message.id} will be redelivered",
                topic=message.topic,
                message_id=message.id,
            )

    def _publish_failure_marker(self, message: MessageRecord) -> None:
        kind = FAILURE_KINDS.get(message.topic)
        if self._failure_publisher is None or kind is None:
            return
        try:
            submission_id, payload = _submission_of(message.topic, message.body)
            self._failure_publisher.emit(Envelope(id=submission_id, kind=kind, payload=payload))
        except MalformedEnvelopeError as exc:
            Log.warning(
                f"Cannot publish {kind.value} marker for an undecodable message: {exc}",
                message_id=message.id,
            )
        except PipelineError as exc:
            Log.error(f"Failed to publish {kind.value} marker: {exc}", message_id=message.id)


def _submission_of(topic: str, body: dict[str, Any]) -> tuple[str, SubmissionPayload]:
    if topic == SUBMISSION_FOUND:
        document = inbound_from_dict(body)
        return document.id, document.to_payload()
    request = stage_request_from_dict(body)
    return request.submission_id, request.payload
