import io

import pdfplumber

from docflow.extractors.base import BaseTextExtractor, join_pages
from docflow.extractors.exceptions import PdfExtractionError


class PdfPlumberAdapter(BaseTextExtractor):
    """Extracts the text layer of a PDF using pdfplumber."""

    def extract(self, content: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                return join_pages(page.extract_text() or "" for page in pdf.pages)
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc
