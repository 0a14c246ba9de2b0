"""Explicit routing table mapping (source, detail type) to stage handlers."""

from collections.abc import Callable
from dataclasses import dataclass
from fnmatch import fnmatchcase

from docpipe.events.models import PipelineEvent
from docpipe.logging.logger import Log

EventHandler = Callable[[PipelineEvent], None]


@dataclass(frozen=True)
class Route:
    source_pattern: str
    detail_type_pattern: str
    handler: EventHandler
    name: str

    def matches(self, event: PipelineEvent) -> bool:
        return fnmatchcase(event.source, self.source_pattern) and fnmatchcase(
            event.detail_type, self.detail_type_pattern
        )


class EventRouter:
    """Routing table built once at startup.

    Patterns are shell-style (``idp.*``); every matching route receives the
    event, in registration order.
    """

    def __init__(self) -> None:
        self._routes: list[Route] = []

    def subscribe(
        self,
        source_pattern: str,
        detail_type_pattern: str,
        handler: EventHandler,
        name: str | None = None,
    ) -> None:
        route_name = name or getattr(handler, "__qualname__", repr(handler))
        self._routes.append(
            Route(source_pattern, detail_type_pattern, handler, route_name)
        )

    @property
    def routes(self) -> list[Route]:
        return list(self._routes)

    def handlers_for(self, event: PipelineEvent) -> list[Route]:
        return [route for route in self._routes if route.matches(event)]

    def dispatch(self, event: PipelineEvent) -> int:
        """Deliver the event to every matching handler. Returns the handler count.

        Handler exceptions propagate so the delivery layer can redeliver.
        """
        routes = self.handlers_for(event)
        if not routes:
            Log.warning(
                f"No route for event '{event.detail_type}' from '{event.source}', dropping",
                document_id=event.document_id,
            )
            return 0
        for route in routes:
            Log.debug(
                f"Routing '{event.detail_type}' to {route.name}",
                document_id=event.document_id,
            )
            route.handler(event)
        return len(routes)
