from abc import ABC, abstractmethod

from docflow.classification.models import ClassificationResult


class BaseClassifier(ABC):
    """Contract for all classification adapters."""

    @abstractmethod
    def classify(self, text: str) -> ClassificationResult:
        """Assign one category of the configured vocabulary to a document.

        Args:
            text: Extracted attachment text, possibly empty.

        Returns:
            ClassificationResult with type and confidence.

        Raises:
            ClassificationError: on any failure.
        """
