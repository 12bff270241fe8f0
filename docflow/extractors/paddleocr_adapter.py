"""PaddleOCR integration for image attachments.

The image is decoded with PyMuPDF into an RGB pixmap, converted to a numpy
uint8 array of shape (H, W, 3) and passed to PaddleOCR, whose per-line results
are joined top to bottom into plain text.
"""

import threading

import numpy as np
import pymupdf
from paddleocr import PaddleOCR

from docflow.extractors.base import BaseTextExtractor
from docflow.extractors.exceptions import OcrError


class PaddleOcrAdapter(BaseTextExtractor):
    """Thin wrapper around PaddleOCR.

    The model is loaded once in __init__ and reused for every image. PaddleOCR
    is not thread-safe, so inference calls are serialized with a lock.
    """

    def __init__(self, lang: str = "en") -> None:
        self._ocr = PaddleOCR(
            use_angle_cls=False,
            lang=lang,
            show_log=False,
            use_gpu=False,
        )
        self._lock = threading.Lock()

    def extract(self, content: bytes) -> str:
        try:
            image = self._decode(content)
            with self._lock:
                result = self._ocr.ocr(image, cls=False)
        except OcrError:
            raise
        except Exception as exc:
            raise OcrError(f"paddleocr extraction failed: {exc}") from exc

        if not result or not result[0]:
            return ""
        lines = [text for _box, (text, _confidence) in result[0] if text.strip()]
        return "\n".join(lines).strip()

    @staticmethod
    def _decode(content: bytes) -> np.ndarray:
        try:
            pix = pymupdf.Pixmap(content)
        except Exception as exc:
            raise OcrError(f"Unreadable image: {exc}") from exc
        if pix.alpha:
            pix = pymupdf.Pixmap(pix, 0)
        if pix.n < 3:
            pix = pymupdf.Pixmap(pymupdf.csRGB, pix)
        return np.frombuffer(pix.samples, dtype=np.uint8).reshape(
            pix.height, pix.width, pix.n
        )
