from abc import ABC, abstractmethod
from typing import Any


class BaseEventChannel(ABC):
    """Contract for the at-least-once publish side of the event channel."""

    @abstractmethod
    def publish(self, source: str, detail_type: str, detail: dict[str, Any]) -> None:
        """Publish one event.

        Args:
            source: Producer name, e.g. ``idp.extraction``.
            detail_type: Human-readable event name, e.g. ``Text Extracted``.
            detail: JSON-serializable payload carrying at least ``documentId``.

        Returns once the event is durably accepted by the channel; raises
        otherwise.
        """
