from abc import ABC, abstractmethod
from typing import Any


class Stage(ABC):
    """Contract for every channel consumer."""

    name: str

    @abstractmethod
    def handle(self, body: dict[str, Any]) -> None:
        """Process one decoded channel message.

        Raises:
            MalformedEnvelopeError: if the message is structurally invalid.
            PersistenceError: if the store could not be read or written.
        """
