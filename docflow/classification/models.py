from dataclasses import dataclass

from docflow.pipeline.models import UNKNOWN_CATEGORY


@dataclass(frozen=True)
class ClassificationResult:
    """Category assigned to one attachment's text."""

    type: str
    confidence: float

    @classmethod
    def unknown(cls) -> "ClassificationResult":
        return cls(type=UNKNOWN_CATEGORY, confidence=0.0)
