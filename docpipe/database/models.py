from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class EventRecord:
    """Represents a row from the pipeline_events table."""

    id: int
    source: str
    detail_type: str
    detail: dict[str, Any]
    status: str
    attempts: int
    error_message: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
