import time

from docflow.database.connection import Database
from docflow.database.models import MessageRecord
from docflow.database.repositories.message_repository import MessageRepository
from docflow.logging.logger import Log
from docflow.worker.delivery_runner import DeliveryRunner


class Consumer:
    """Poll loop for one topic: requeue stale -> claim -> dispatch -> sleep when idle."""

    def __init__(
        self,
        topic: str,
        db: Database,
        message_repo: MessageRepository,
        runner: DeliveryRunner,
        *,
        poll_interval_seconds: int = 5,
        visibility_timeout_seconds: int = 300,
    ) -> None:
        self._topic = topic
        self._db = db
        self._message_repo = message_repo
        self._runner = runner
        self._poll_interval_seconds = poll_interval_seconds
        self._visibility_timeout_seconds = visibility_timeout_seconds

    def run(self, max_messages: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_messages is set, stop after delivering that many messages (for testing).
        """
        Log.info(f"Consumer started, polling {self._topic}", topic=self._topic)
        delivered = 0
        try:
            while max_messages is None or delivered < max_messages:
                self._requeue_stale()
                message = self._try_claim()
                if message:
                    self._try_deliver(message)
                    delivered += 1
                else:
                    Log.debug("No messages available, sleeping", topic=self._topic)
                    time.sleep(self._poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Consumer shutting down gracefully", topic=self._topic)

    def _requeue_stale(self) -> None:
        try:
            count = self._message_repo.requeue_stale(
                self._topic, self._visibility_timeout_seconds
            )
        except Exception as exc:
            Log.warning(f"Database error while requeueing, will retry: {exc}", topic=self._topic)
            return
        if count:
            Log.warning(f"Requeued {count} stale in-flight messages", topic=self._topic)

    def _try_deliver(self, message: MessageRecord) -> None:
        """Run one message. A database error while acking leaves it in flight for requeue."""
        try:
            self._runner.run(message)
        except Exception:
            Log.exception(
                f"Database error while settling message {message.id}, "
                "it will be requeued after the visibility timeout",
                topic=self._topic,
                message_id=message.id,
            )

    def _try_claim(self) -> MessageRecord | None:
        """Attempt to claim the next message. Gracefully handle DB errors."""
        try:
            with self._db.connection() as conn:
                return self._message_repo.claim_next(conn, self._topic)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}", topic=self._topic)
            return None
