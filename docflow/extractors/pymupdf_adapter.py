import pymupdf

from docflow.extractors.base import BaseTextExtractor, join_pages
from docflow.extractors.exceptions import PdfExtractionError


class PyMuPdfAdapter(BaseTextExtractor):
    """Extracts the text layer of a PDF using PyMuPDF, in reading order."""

    def extract(self, content: bytes) -> str:
        try:
            with pymupdf.open(stream=content, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                return join_pages(page.get_text(sort=True) for page in doc)
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc
