from typing import Any

import psycopg

from docflow.channel.topics import ALL_TOPICS
from docflow.database.repositories.message_repository import MessageRepository
from docflow.logging.logger import Log
from docflow.pipeline.exceptions import PersistenceError


class MessageChannel:
    """Publishes messages to named topics.

    Messages are durable rows keyed by a partition key (the submission id);
    consumers claim them through the same repository.
    """

    def __init__(self, message_repo: MessageRepository) -> None:
        self._message_repo = message_repo

    def publish(self, topic: str, partition_key: str, body: dict[str, Any]) -> int:
        """Append a message to ``topic``.

        Raises:
            ValueError: for an unknown topic.
            PersistenceError: if the message could not be stored.
        """
        if topic not in ALL_TOPICS:
            raise ValueError(f"Unknown topic '{topic}'. Choose from: {list(ALL_TOPICS)}")
        try:
            message_id = self._message_repo.insert(topic, partition_key, body)
        except psycopg.Error as exc:
            raise PersistenceError(f"Failed to publish to {topic}: {exc}") from exc
        Log.debug(
            f"Published message {message_id} to {topic}",
            topic=topic,
            submission_id=partition_key,
        )
        return message_id
