from functools import partial
from typing import Any

from docflow.classification.base import BaseClassifier
from docflow.classification.models import ClassificationResult
from docflow.logging.logger import Log
from docflow.pipeline.codec import stage_request_from_dict
from docflow.pipeline.fanout import fan_out
from docflow.pipeline.models import (
    UNKNOWN_CATEGORY,
    AttachmentEntry,
    Envelope,
    EnvelopeKind,
    StageRequest,
)
from docflow.pipeline.publisher import EventPublisher
from docflow.stages.base import Stage


class ClassificationStage(Stage):
    """Assigns a category and confidence to every attachment of a submission.

    An engine error or an unusable answer classifies that attachment as
    ``unknown`` with zero confidence; the completion envelope is always emitted.
    """

    name = "classification"

    def __init__(
        self,
        classifier: BaseClassifier,
        publisher: EventPublisher,
        *,
        max_concurrency: int = 4,
    ) -> None:
        self._classifier = classifier
        self._publisher = publisher
        self._max_concurrency = max_concurrency

    def handle(self, body: dict[str, Any]) -> None:
        self.classify(stage_request_from_dict(body))

    def classify(self, request: StageRequest) -> Envelope:
        submission_id = request.submission_id
        attachments = request.payload.attachments
        Log.info(
            f"Classifying {len(attachments)} attachments",
            submission_id=submission_id,
        )

        entries = fan_out(
            attachments,
            partial(self._classify_one, submission_id),
            on_error=partial(self._fallback, submission_id),
            limit=self._max_concurrency,
        )

        envelope = Envelope(
            id=submission_id,
            kind=EnvelopeKind.CLASSIFICATION_COMPLETED,
            payload=request.payload.with_attachments(entries),
        )
        self._publisher.emit(envelope)
        Log.info("Classification completed", submission_id=submission_id)
        return envelope

    def _classify_one(self, submission_id: str, entry: AttachmentEntry) -> AttachmentEntry:
        result = self._classifier.classify(entry.extracted_text or "")
        Log.info(
            f"Classified as {result.type} ({result.confidence:.2f})",
            submission_id=submission_id,
            attachment=entry.filename,
        )
        return entry.with_classification(
            result.type, result.confidence, error=entry.processing_error
        )

    @staticmethod
    def _fallback(submission_id: str, entry: AttachmentEntry, exc: Exception) -> AttachmentEntry:
        Log.warning(
            f"Classification failed, falling back to '{UNKNOWN_CATEGORY}': {exc}",
            submission_id=submission_id,
            attachment=entry.filename,
        )
        fallback = ClassificationResult.unknown()
        return entry.with_classification(
            fallback.type, fallback.confidence, error=f"classification failed: {exc}"
        )
