from typing import Any

from docpipe.database.repositories.event_repository import EventRepository
from docpipe.events.base import BaseEventChannel
from docpipe.logging.logger import Log


class PostgresEventChannel(BaseEventChannel):
    """Publishes into the pipeline_events outbox drained by the worker."""

    def __init__(self, event_repo: EventRepository) -> None:
        self._event_repo = event_repo

    def publish(self, source: str, detail_type: str, detail: dict[str, Any]) -> None:
        event_id = self._event_repo.insert(source, detail_type, detail)
        Log.info(
            f"Published '{detail_type}' from '{source}' as event {event_id}",
            document_id=detail.get("documentId"),
        )
