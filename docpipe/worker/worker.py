import time

from docpipe.config.settings import Settings
from docpipe.database.connection import get_connection
from docpipe.database.models import EventRecord
from docpipe.database.repositories.event_repository import EventRepository
from docpipe.logging.logger import Log
from docpipe.worker.event_runner import EventRunner


class Worker:
    """Poll loop: sleep -> claim -> deliver.

    Stale outbox rows are requeued on start and again every
    ``stale_requeue_idle_polls`` empty polls.
    """

    def __init__(
        self,
        event_repo: EventRepository,
        event_runner: EventRunner,
        settings: Settings,
        stale_after_seconds: int | None = None,
    ) -> None:
        self._event_repo = event_repo
        self._event_runner = event_runner
        self._settings = settings
        self._stale_after_seconds = stale_after_seconds

    def run(self, max_events: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_events is set, stop after delivering that many events (for testing).
        """
        Log.info("Worker started, polling for events")
        self._requeue_stale()
        delivered = 0
        idle_polls = 0
        try:
            while max_events is None or delivered < max_events:
                event = self._try_claim_event()
                if event:
                    self._event_runner.run(event)
                    delivered += 1
                    continue
                idle_polls += 1
                if idle_polls >= self._settings.stale_requeue_idle_polls:
                    self._requeue_stale()
                    idle_polls = 0
                Log.debug("No events available, sleeping")
                time.sleep(self._settings.event_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _try_claim_event(self) -> EventRecord | None:
        """Attempt to claim the next pending event. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._event_repo.claim_next_event(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None

    def _requeue_stale(self) -> None:
        """Release events left in processing by a worker that died mid-delivery."""
        if self._stale_after_seconds is None:
            return
        try:
            count = self._event_repo.requeue_stale(self._stale_after_seconds)
        except Exception as exc:
            Log.warning(f"Could not requeue stale events: {exc}")
            return
        if count:
            Log.warning(f"Requeued {count} stale events")
