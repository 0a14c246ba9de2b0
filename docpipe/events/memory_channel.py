import copy
import json
import threading
from collections import deque
from typing import Any

from docpipe.events.base import BaseEventChannel
from docpipe.events.models import PipelineEvent
from docpipe.events.router import EventRouter
from docpipe.logging.logger import Log


class InMemoryEventChannel(BaseEventChannel):
    """Process-local FIFO channel used by the ``memory`` backend and in tests.

    ``published`` keeps every event ever published, including re-emits, so
    callers can assert on the exact event history.
    """

    def __init__(self, max_attempts: int = 3) -> None:
        self._max_attempts = max_attempts
        self._queue: deque[tuple[PipelineEvent, int]] = deque()
        self._lock = threading.Lock()
        self.published: list[PipelineEvent] = []
        self.undeliverable: list[PipelineEvent] = []

    def publish(self, source: str, detail_type: str, detail: dict[str, Any]) -> None:
        json.dumps(detail)  # the wire contract requires a JSON-serializable detail
        event = PipelineEvent(source, detail_type, copy.deepcopy(detail))
        with self._lock:
            self._queue.append((event, 0))
            self.published.append(event)
        Log.debug(f"Queued '{detail_type}' from '{source}'", document_id=event.document_id)

    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def drain(self, router: EventRouter, max_deliveries: int | None = None) -> int:
        """Deliver queued events until the queue is empty. Returns deliveries made.

        A failing delivery is re-queued at the back until it has been attempted
        ``max_attempts`` times, then parked in ``undeliverable``.
        """
        deliveries = 0
        while max_deliveries is None or deliveries < max_deliveries:
            with self._lock:
                if not self._queue:
                    break
                event, attempts = self._queue.popleft()
            deliveries += 1
            try:
                router.dispatch(event)
            except Exception as exc:
                attempts += 1
                if attempts >= self._max_attempts:
                    Log.error(
                        f"Event '{event.detail_type}' undeliverable after "
                        f"{attempts} attempts: {exc}",
                        document_id=event.document_id,
                    )
                    with self._lock:
                        self.undeliverable.append(event)
                else:
                    Log.warning(
                        f"Delivery of '{event.detail_type}' failed "
                        f"(attempt {attempts}), re-queued: {exc}",
                        document_id=event.document_id,
                    )
                    with self._lock:
                        self._queue.append((event, attempts))
        return deliveries
