from functools import partial
from typing import Any

from docflow.channel.topics import CLASSIFICATION_INIT
from docflow.content.loader import ContentLoader
from docflow.extractors.router import ExtractorRouter
from docflow.logging.logger import Log
from docflow.pipeline.codec import stage_request_from_dict
from docflow.pipeline.fanout import fan_out
from docflow.pipeline.models import AttachmentEntry, Envelope, EnvelopeKind, StageRequest
from docflow.pipeline.publisher import EventPublisher
from docflow.stages.base import Stage


class ExtractionStage(Stage):
    """Fills ``extracted_text`` on every attachment of a submission.

    Each attachment is fetched and extracted independently under its own time
    budget. A timeout or engine failure leaves that attachment with empty text
    and never aborts the submission.
    """

    name = "extraction"

    def __init__(
        self,
        content_loader: ContentLoader,
        router: ExtractorRouter,
        publisher: EventPublisher,
        *,
        timeout_seconds: float = 60.0,
        max_concurrency: int = 4,
    ) -> None:
        self._content_loader = content_loader
        self._router = router
        self._publisher = publisher
        self._timeout_seconds = timeout_seconds
        self._max_concurrency = max_concurrency

    def handle(self, body: dict[str, Any]) -> None:
        self.extract(stage_request_from_dict(body))

    def extract(self, request: StageRequest) -> Envelope:
        submission_id = request.submission_id
        attachments = request.payload.attachments
        Log.info(
            f"Extracting text from {len(attachments)} attachments",
            submission_id=submission_id,
        )

        entries = fan_out(
            attachments,
            partial(self._extract_one, submission_id),
            on_error=partial(self._fallback, submission_id),
            limit=self._max_concurrency,
            timeout=self._timeout_seconds,
        )

        payload = request.payload.with_attachments(entries)
        envelope = Envelope(
            id=submission_id,
            kind=EnvelopeKind.EXTRACTION_COMPLETED,
            payload=payload,
        )
        self._publisher.emit(
            envelope,
            next_topic=CLASSIFICATION_INIT,
            next_request=StageRequest(submission_id=submission_id, payload=payload),
        )
        failed = sum(1 for entry in entries if entry.processing_error)
        Log.info(
            f"Extraction completed ({failed} of {len(entries)} attachments fell back)",
            submission_id=submission_id,
        )
        return envelope

    def _extract_one(self, submission_id: str, entry: AttachmentEntry) -> AttachmentEntry:
        engine = self._router.engine_for(entry.content_type)
        if engine is None:
            Log.warning(
                f"Unsupported file type: {entry.content_type}",
                submission_id=submission_id,
                attachment=entry.filename,
            )
            return entry.with_text("")

        content = self._content_loader.load(entry.content_location)
        text = engine.extract(content)
        Log.info(
            f"Extracted {len(text)} chars",
            submission_id=submission_id,
            attachment=entry.filename,
        )
        return entry.with_text(text)

    @staticmethod
    def _fallback(submission_id: str, entry: AttachmentEntry, exc: Exception) -> AttachmentEntry:
        Log.warning(
            f"Extraction failed, continuing with empty text: {exc}",
            submission_id=submission_id,
            attachment=entry.filename,
        )
        return entry.with_text("", error=f"extraction failed: {exc}")
