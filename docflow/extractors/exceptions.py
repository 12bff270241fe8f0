class ExtractionEngineError(Exception):
    """Base exception for text extraction engines."""


class PdfExtractionError(ExtractionEngineError):
    """Raised when text cannot be extracted from a PDF."""


class OcrError(ExtractionEngineError):
    """Raised when OCR fails on an image."""
