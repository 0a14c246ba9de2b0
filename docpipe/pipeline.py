"""Wires stores, channel, collaborators and stage processors from settings."""

from dataclasses import dataclass
from pathlib import Path

from docpipe.config.settings import Settings
from docpipe.database.repositories.document_repository import DocumentRepository
from docpipe.database.repositories.event_repository import EventRepository
from docpipe.documents.store import BaseDocumentStore, InMemoryDocumentStore
from docpipe.entities.base import BaseEntityExtractor
from docpipe.entities.factory import EntityExtractorFactory
from docpipe.events.base import BaseEventChannel
from docpipe.events.memory_channel import InMemoryEventChannel
from docpipe.events.models import (
    CLASSIFICATION_SOURCE,
    DOCUMENT_CLASSIFIED,
    DOCUMENT_SUMMARIZED,
    DOCUMENT_UPLOADED,
    EXTRACTION_SOURCE,
    SUMMARIZATION_SOURCE,
    TEXT_EXTRACTED,
    UPLOAD_SOURCE,
)
from docpipe.events.postgres_channel import PostgresEventChannel
from docpipe.events.router import EventRouter
from docpipe.handlers.ingestion import IngestionHandler
from docpipe.handlers.status import StatusQueryHandler
from docpipe.handlers.trigger import StorageArrivalTrigger
from docpipe.ocr.base import BaseTextDetector
from docpipe.ocr.factory import TextDetectorFactory
from docpipe.stages.base import StageProcessor
from docpipe.stages.classification import ClassificationProcessor
from docpipe.stages.extraction import ExtractionProcessor
from docpipe.stages.finalization import FinalizationProcessor
from docpipe.stages.summarization import SummarizationProcessor
from docpipe.storage.base import BaseBlobStorage
from docpipe.storage.local_storage import LocalBlobStorage

BACKENDS = ("postgres", "memory")


@dataclass
class Pipeline:
    store: BaseDocumentStore
    channel: BaseEventChannel
    storage: BaseBlobStorage
    router: EventRouter
    processors: list[StageProcessor]
    ingestion: IngestionHandler
    trigger: StorageArrivalTrigger
    status: StatusQueryHandler

    def drain(self) -> int:
        """Deliver queued events in-process. Only the ``memory`` backend has a local queue."""
        if isinstance(self.channel, InMemoryEventChannel):
            return self.channel.drain(self.router)
        return 0


def build_router(processors: list[StageProcessor]) -> EventRouter:
    """Build the routing table: each completion event starts exactly one next stage."""
    by_stage = {type(processor): processor for processor in processors}
    table = (
        (UPLOAD_SOURCE, DOCUMENT_UPLOADED, ExtractionProcessor),
        (EXTRACTION_SOURCE, TEXT_EXTRACTED, ClassificationProcessor),
        (CLASSIFICATION_SOURCE, DOCUMENT_CLASSIFIED, SummarizationProcessor),
        (SUMMARIZATION_SOURCE, DOCUMENT_SUMMARIZED, FinalizationProcessor),
    )
    router = EventRouter()
    for source, detail_type, processor_cls in table:
        processor = by_stage.get(processor_cls)
        if processor is None:
            raise ValueError(f"No processor registered for {processor_cls.__name__}")
        router.subscribe(source, detail_type, processor, name=processor_cls.__name__)
    return router


def build_processors(
    settings: Settings,
    store: BaseDocumentStore,
    channel: BaseEventChannel,
    text_detector: BaseTextDetector,
    entity_extractor: BaseEntityExtractor,
) -> list[StageProcessor]:
    return [
        ExtractionProcessor(
            store, channel, text_detector, timeout_seconds=settings.extraction_timeout_seconds
        ),
        ClassificationProcessor(
            store,
            channel,
            entity_extractor,
            timeout_seconds=settings.classification_timeout_seconds,
        ),
        SummarizationProcessor(
            store, channel, timeout_seconds=settings.summarization_timeout_seconds
        ),
        FinalizationProcessor(
            store,
            channel,
            timeout_seconds=settings.finalization_timeout_seconds,
            stale_claim_seconds=settings.finalization_stale_claim_seconds,
        ),
    ]


def build_pipeline(
    settings: Settings,
    *,
    store: BaseDocumentStore | None = None,
    channel: BaseEventChannel | None = None,
    storage: BaseBlobStorage | None = None,
    text_detector: BaseTextDetector | None = None,
    entity_extractor: BaseEntityExtractor | None = None,
) -> Pipeline:
    """Build every component for the configured backend.

    Explicit arguments replace the component the settings would create.
    The ``postgres`` backend expects ``init_pool`` to have been called.
    """
    backend = settings.pipeline_backend.lower()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown pipeline backend '{backend}'. Choose from: {list(BACKENDS)}")

    if store is None:
        store = InMemoryDocumentStore() if backend == "memory" else DocumentRepository()
    if channel is None:
        channel = (
            InMemoryEventChannel(settings.max_event_attempts)
            if backend == "memory"
            else PostgresEventChannel(EventRepository(settings.max_event_attempts))
        )
    if storage is None:
        storage = LocalBlobStorage(
            root=Path(settings.storage_root),
            bucket=settings.storage_bucket,
            public_base_url=settings.public_base_url,
            signing_secret=settings.upload_signing_secret,
        )
    if text_detector is None:
        text_detector = TextDetectorFactory.create(settings, storage)
    if entity_extractor is None:
        entity_extractor = EntityExtractorFactory.create(settings)

    processors = build_processors(settings, store, channel, text_detector, entity_extractor)
    return Pipeline(
        store=store,
        channel=channel,
        storage=storage,
        router=build_router(processors),
        processors=processors,
        ingestion=IngestionHandler(store, storage, settings.upload_url_ttl_seconds),
        trigger=StorageArrivalTrigger(channel),
        status=StatusQueryHandler(store),
    )
