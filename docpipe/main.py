from docpipe.config.settings import Settings
from docpipe.database.connection import close_pool, init_pool
from docpipe.database.repositories.event_repository import EventRepository
from docpipe.logging.logger import Log
from docpipe.pipeline import build_pipeline
from docpipe.worker.event_runner import EventRunner
from docpipe.worker.worker import Worker


def stale_delivery_seconds(settings: Settings) -> int:
    """An event still 'processing' after the longest stage timeout has lost its worker."""
    timeouts = [
        settings.extraction_timeout_seconds,
        settings.classification_timeout_seconds,
        settings.summarization_timeout_seconds,
        settings.finalization_timeout_seconds or 0,
    ]
    return int(max(timeouts)) * 2


def main() -> None:
    """Entry point: initialize pool -> build pipeline -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    if settings.pipeline_backend.lower() != "postgres":
        raise SystemExit("The worker needs PIPELINE_BACKEND=postgres")
    init_pool(settings)

    try:
        pipeline = build_pipeline(settings)
        event_repo = EventRepository(settings.max_event_attempts)
        event_runner = EventRunner(pipeline.router, event_repo, settings)
        worker = Worker(
            event_repo,
            event_runner,
            settings,
            stale_after_seconds=stale_delivery_seconds(settings),
        )
        worker.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
