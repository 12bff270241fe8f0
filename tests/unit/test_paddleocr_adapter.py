from unittest.mock import MagicMock, patch

import pytest

pytest.importorskip("paddleocr")

from docflow.extractors.exceptions import OcrError  # noqa: E402
from docflow.extractors.paddleocr_adapter import PaddleOcrAdapter  # noqa: E402


def _make_adapter(ocr_result: object) -> tuple[PaddleOcrAdapter, MagicMock]:
    with patch("docflow.extractors.paddleocr_adapter.PaddleOCR") as mock_cls:
        engine = mock_cls.return_value
        engine.ocr.return_value = ocr_result
        adapter = PaddleOcrAdapter(lang="en")
    return adapter, engine


class TestPaddleOcrAdapter:
    def test_joins_recognized_lines(self, sample_png_bytes: bytes) -> None:
        box = [[0, 0], [1, 0], [1, 1], [0, 1]]
        adapter, engine = _make_adapter([[(box, ("RECEIPT", 0.98)), (box, ("2024", 0.95))]])

        result = adapter.extract(sample_png_bytes)

        assert result == "RECEIPT\n2024"
        image = engine.ocr.call_args.args[0]
        assert image.ndim == 3
        assert image.shape[2] == 3

    def test_no_text_returns_empty_string(self, sample_png_bytes: bytes) -> None:
        adapter, _engine = _make_adapter([None])
        assert adapter.extract(sample_png_bytes) == ""

    def test_unreadable_image_raises(self) -> None:
        adapter, _engine = _make_adapter([[]])
        with pytest.raises(OcrError, match="Unreadable image"):
            adapter.extract(b"not an image")

    def test_engine_failure_is_wrapped(self, sample_png_bytes: bytes) -> None:
        adapter, engine = _make_adapter(None)
        engine.ocr.side_effect = RuntimeError("model crashed")
        with pytest.raises(OcrError, match="model crashed"):
            adapter.extract(sample_png_bytes)
