from enum import Enum

from docflow.extractors.base import BaseTextExtractor


class ContentFamily(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"


def content_family(content_type: str) -> ContentFamily | None:
    """Map a MIME type to the engine family that can read it, if any."""
    normalized = content_type.split(";", 1)[0].strip().lower()
    if normalized.startswith("image/"):
        return ContentFamily.IMAGE
    if "pdf" in normalized:
        return ContentFamily.DOCUMENT
    return None


class ExtractorRouter:
    """Picks the extraction engine for an attachment's content type."""

    def __init__(self, pdf_extractor: BaseTextExtractor, ocr_engine: BaseTextExtractor) -> None:
        self._engines = {
            ContentFamily.DOCUMENT: pdf_extractor,
            ContentFamily.IMAGE: ocr_engine,
        }

    def engine_for(self, content_type: str) -> BaseTextExtractor | None:
        family = content_family(content_type)
        return self._engines[family] if family is not None else None
