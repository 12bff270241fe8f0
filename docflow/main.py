"""Process entry point.

Usage:
    docflow ingestion               # consume submission.found
    docflow extraction              # consume ocr.init
    docflow classification          # consume classification.init
    docflow reconciler              # consume event.pipeline
    docflow api                     # serve the read endpoint
    docflow publish event.json      # publish an inbound event to submission.found
"""

import argparse
import json
from collections.abc import Callable
from pathlib import Path

import httpx
import uvicorn

from docflow.api.app import create_app
from docflow.cache.status_cache import StatusCache
from docflow.channel.channel import MessageChannel
from docflow.channel.topics import (
    CLASSIFICATION_INIT,
    EVENT_PIPELINE,
    EXTRACTION_INIT,
    SUBMISSION_FOUND,
)
from docflow.classification.factory import ClassifierFactory
from docflow.config.settings import Settings
from docflow.content.loader import ContentLoader
from docflow.database.connection import Database
from docflow.database.repositories.message_repository import MessageRepository
from docflow.database.repositories.submission_repository import SubmissionRepository
from docflow.database.schema import apply_schema
from docflow.extractors.factory import ExtractorFactory
from docflow.extractors.router import ExtractorRouter
from docflow.logging.logger import Log
from docflow.pipeline.codec import inbound_from_dict, inbound_to_dict
from docflow.pipeline.publisher import EventPublisher
from docflow.stages.base import Stage
from docflow.stages.classification import ClassificationStage
from docflow.stages.extraction import ExtractionStage
from docflow.stages.ingestion import IngestionStage
from docflow.stages.reconciler import StatusReconciler
from docflow.worker.consumer import Consumer
from docflow.worker.delivery_runner import DeliveryRunner

STAGE_TOPICS: dict[str, str] = {
    "ingestion": SUBMISSION_FOUND,
    "extraction": EXTRACTION_INIT,
    "classification": CLASSIFICATION_INIT,
    "reconciler": EVENT_PIPELINE,
}


class Resources:
    """Process-wide handles, opened at start and closed on shutdown."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.db = Database(settings)
        self.cache = StatusCache.from_settings(settings)
        self.message_repo = MessageRepository(self.db, settings.max_delivery_attempts)
        self.submission_repo = SubmissionRepository(self.db)
        self.channel = MessageChannel(self.message_repo)
        self.publisher = EventPublisher(self.channel, self.cache)
        self._closers: list[Callable[[], None]] = []

    def open(self) -> None:
        self.db.open()
        apply_schema(self.db)

    def on_close(self, closer: Callable[[], None]) -> None:
        self._closers.append(closer)

    def close(self) -> None:
        for closer in reversed(self._closers):
            closer()
        self.cache.close()
        self.db.close()


def build_stage(name: str, resources: Resources) -> Stage:
    settings = resources.settings
    if name == "ingestion":
        return IngestionStage(resources.submission_repo, resources.publisher)
    if name == "extraction":
        files_root = Path(settings.content_files_root) if settings.content_files_root else None
        loader = ContentLoader(
            httpx.Client(timeout=settings.content_fetch_timeout_seconds),
            files_root=files_root,
        )
        resources.on_close(loader.close)
        router = ExtractorRouter(
            pdf_extractor=ExtractorFactory.create_pdf(settings),
            ocr_engine=ExtractorFactory.create_ocr(settings),
        )
        return ExtractionStage(
            loader,
            router,
            resources.publisher,
            timeout_seconds=settings.extraction_timeout_seconds,
            max_concurrency=settings.extraction_max_concurrency,
        )
    if name == "classification":
        return ClassificationStage(
            ClassifierFactory.create(settings),
            resources.publisher,
            max_concurrency=settings.classification_max_concurrency,
        )
    if name == "reconciler":
        return StatusReconciler(resources.submission_repo)
    raise ValueError(f"Unknown stage '{name}'. Choose from: {list(STAGE_TOPICS)}")


def run_stage(name: str, resources: Resources) -> None:
    settings = resources.settings
    stage = build_stage(name, resources)
    runner = DeliveryRunner(
        stage,
        resources.message_repo,
        settings.max_delivery_attempts,
        failure_publisher=resources.publisher if settings.publish_failure_markers else None,
    )
    consumer = Consumer(
        STAGE_TOPICS[name],
        resources.db,
        resources.message_repo,
        runner,
        poll_interval_seconds=settings.channel_poll_interval_seconds,
        visibility_timeout_seconds=settings.channel_visibility_timeout_seconds,
    )
    consumer.run()


def publish_event(path: Path, resources: Resources) -> int:
    """Validate an inbound event file and publish it to submission.found."""
    document = inbound_from_dict(json.loads(path.read_text(encoding="utf-8")))
    message_id = resources.channel.publish(
        SUBMISSION_FOUND, document.id, inbound_to_dict(document)
    )
    Log.info(f"Published inbound event as message {message_id}", submission_id=document.id)
    return message_id


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="docflow",
        description="Document ingestion, extraction and classification pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, topic in STAGE_TOPICS.items():
        subparsers.add_parser(name, help=f"Consume {topic}")
    subparsers.add_parser("api", help="Serve the read endpoint")
    publish = subparsers.add_parser("publish", help="Publish an inbound event JSON file")
    publish.add_argument("event_file", type=Path, help="Path to the inbound event JSON")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Entry point: load settings -> open resources -> run the command -> close."""
    args = parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    resources = Resources(settings)
    try:
        resources.open()
        if args.command == "api":
            app = create_app(resources.submission_repo)
            uvicorn.run(app, host=settings.api_host, port=settings.api_port)
        elif args.command == "publish":
            publish_event(args.event_file, resources)
        else:
            run_stage(args.command, resources)
    finally:
        resources.close()


if __name__ == "__main__":
    main()
