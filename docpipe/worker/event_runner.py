from docpipe.config.settings import Settings
from docpipe.database.models import EventRecord
from docpipe.database.repositories.event_repository import EventRepository
from docpipe.documents.exceptions import InvalidEventError
from docpipe.events.models import PipelineEvent
from docpipe.events.router import EventRouter
from docpipe.logging.logger import Log


class EventRunner:
    """Deliver one claimed event, catch exceptions, and apply the redelivery policy."""

    def __init__(
        self,
        router: EventRouter,
        event_repo: EventRepository,
        settings: Settings,
    ) -> None:
        self._router = router
        self._event_repo = event_repo
        self._settings = settings

    def run(self, record: EventRecord) -> None:
        """Dispatch a single event with error handling."""
        event = PipelineEvent(record.source, record.detail_type, record.detail)
        Log.info(
            f"Delivering event {record.id} '{record.detail_type}' (attempt {record.attempts + 1})",
            document_id=event.document_id,
        )
        try:
            self._router.dispatch(event)
            self._event_repo.mark_done(record.id)
        except InvalidEventError as exc:
            Log.error(f"Event {record.id} is malformed, not retrying: {exc}")
            self._event_repo.mark_failed(record.id, str(exc))
        except Exception as exc:
            self._handle_failure(record, exc)

    def _handle_failure(self, record: EventRecord, exc: Exception) -> None:
        """Return the event to pending, or mark it failed once attempts are used up."""
        Log.error(f"Event {record.id} delivery failed: {exc}")
        if record.attempts + 1 >= self._settings.max_event_attempts:
            self._event_repo.mark_failed(record.id, str(exc))
            Log.error(
                f"Event {record.id} permanently failed after {record.attempts + 1} attempts"
            )
        else:
            self._event_repo.release_for_retry(record.id, str(exc))
            Log.warning(f"Event {record.id} will be redelivered (attempt {record.attempts + 2})")
