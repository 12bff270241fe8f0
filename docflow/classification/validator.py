"""Validates the engine's parsed JSON answer."""

from typing import Any

from docflow.classification.exceptions import ClassificationValidationError
from docflow.classification.models import ClassificationResult


def validate_and_build(data: dict[str, Any], allowed_types: frozenset[str]) -> ClassificationResult:
    """Validate a ``{type, confidence}`` answer and build a ClassificationResult.

    The type is matched case-insensitively against the vocabulary; the
    confidence must be a number within [0, 1].

    Raises:
        ClassificationValidationError: on any validation failure.
    """
    for field in ("type", "confidence"):
        if field not in data:
            raise ClassificationValidationError(f"Missing required field: {field}")
    return ClassificationResult(
        type=_build_type(data["type"], allowed_types),
        confidence=_build_confidence(data["confidence"]),
    )


def _build_type(raw: Any, allowed_types: frozenset[str]) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ClassificationValidationError("'type' must be a non-empty string")
    value = raw.strip().lower()
    if value not in allowed_types:
        raise ClassificationValidationError(
            f"'type' must be one of {sorted(allowed_types)}, got {raw!r}"
        )
    return value


def _build_confidence(raw: Any) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ClassificationValidationError("'confidence' must be a number")
    value = float(raw)
    if not 0.0 <= value <= 1.0:
        raise ClassificationValidationError(
            f"'confidence' must be within [0, 1], got {value}"
        )
    return value
