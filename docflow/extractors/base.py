from abc import ABC, abstractmethod
from collections.abc import Iterable


class BaseTextExtractor(ABC):
    """Contract for all text extraction adapters (PDF parsers and OCR engines)."""

    @abstractmethod
    def extract(self, content: bytes) -> str:
        """Extract plain text from raw file content.

        Args:
            content: Raw bytes of the attachment.

        Returns:
            Extracted text as a single stripped string, empty when the file
            carries no text.

        Raises:
            ExtractionEngineError: if extraction fails for any reason.
        """


def join_pages(pages: Iterable[str]) -> str:
    """Join per-page text, dropping blank pages."""
    return "\n".join(text.strip() for text in pages if text and text.strip())
