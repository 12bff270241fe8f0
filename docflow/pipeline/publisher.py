from docflow.cache.status_cache import StatusCache
from docflow.channel.channel import MessageChannel
from docflow.channel.topics import EVENT_PIPELINE
from docflow.pipeline.codec import envelope_to_dict, stage_request_to_dict
from docflow.pipeline.models import Envelope, StageRequest


class EventPublisher:
    """Emits stage results: status snapshot, common envelope, next-stage request."""

    def __init__(self, channel: MessageChannel, cache: StatusCache) -> None:
        self._channel = channel
        self._cache = cache

    def emit(
        self,
        envelope: Envelope,
        next_topic: str | None = None,
        next_request: StageRequest | None = None,
    ) -> None:
        self._cache.record(envelope)
        self._channel.publish(EVENT_PIPELINE, envelope.id, envelope_to_dict(envelope))
        if next_topic is not None and next_request is not None:
            self._channel.publish(
                next_topic,
                next_request.submission_id,
                stage_request_to_dict(next_request),
            )
