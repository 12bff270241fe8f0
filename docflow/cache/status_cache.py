import json

import redis
from redis.exceptions import RedisError

from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.pipeline.codec import envelope_to_dict
from docflow.pipeline.models import Envelope, EnvelopeKind


def status_key(submission_id: str) -> str:
    return f"status:{submission_id}"


class StatusCache:
    """Write-only store of the last envelope seen per submission.

    Snapshots exist for external fast reads. The pipeline never reads them
    back, so a failed write is logged and otherwise ignored.
    """

    def __init__(
        self,
        client: redis.Redis,
        default_ttl_seconds: int | None = None,
        ttl_by_kind: dict[EnvelopeKind, int | None] | None = None,
    ) -> None:
        self._client = client
        self._default_ttl = default_ttl_seconds
        self._ttl_by_kind = dict(ttl_by_kind or {})

    @classmethod
    def from_settings(cls, settings: Settings) -> "StatusCache":
        client = redis.Redis.from_url(settings.redis_url)
        return cls(
            client,
            default_ttl_seconds=settings.status_cache_default_ttl_seconds,
            ttl_by_kind={
                EnvelopeKind.EXTRACTION_COMPLETED: settings.status_cache_extraction_ttl_seconds,
            },
        )

    def ttl_for(self, kind: EnvelopeKind) -> int | None:
        return self._ttl_by_kind.get(kind, self._default_ttl)

    def record(self, envelope: Envelope) -> None:
        key = status_key(envelope.id)
        value = json.dumps(envelope_to_dict(envelope))
        try:
            self._client.set(key, value, ex=self.ttl_for(envelope.kind))
        except RedisError as exc:
            Log.warning(
                f"Status snapshot write failed: {exc}",
                submission_id=envelope.id,
            )

    def close(self) -> None:
        self._client.close()
