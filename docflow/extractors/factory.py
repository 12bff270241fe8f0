from typing import ClassVar

from docflow.config.settings import Settings
from docflow.extractors.base import BaseTextExtractor
from docflow.extractors.pdfplumber_adapter import PdfPlumberAdapter
from docflow.extractors.pymupdf_adapter import PyMuPdfAdapter


class ExtractorFactory:
    """Creates the configured PDF and OCR engines."""

    PDF_ADAPTERS: ClassVar[dict[str, type[BaseTextExtractor]]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }
    OCR_ENGINES: ClassVar[tuple[str, ...]] = ("paddleocr",)

    @classmethod
    def create_pdf(cls, settings: Settings) -> BaseTextExtractor:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.PDF_ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.PDF_ADAPTERS)}"
            )
        return adapter_cls()

    @classmethod
    def create_ocr(cls, settings: Settings) -> BaseTextExtractor:
        engine = settings.ocr_engine.lower()
        if engine not in cls.OCR_ENGINES:
            raise ValueError(
                f"Unknown OCR engine '{engine}'. Choose from: {list(cls.OCR_ENGINES)}"
            )
        # PaddleOCR ships in the optional "ocr" extra and loads model weights
        # on construction, so it is imported only when an OCR engine is built.
        from docflow.extractors.paddleocr_adapter import PaddleOcrAdapter

        return PaddleOcrAdapter(lang=settings.ocr_lang)
