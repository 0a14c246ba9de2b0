from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docpipe.database.connection import get_connection
from docpipe.database.models import EventRecord


class EventRepository:
    """Database operations for the pipeline_events outbox table."""

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    def insert(self, source: str, detail_type: str, detail: dict[str, Any]) -> int:
        """Append a pending event and return its id."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO pipeline_events (source, detail_type, detail)
                    VALUES (%s, %s, %s)
                    RETURNING id
                    """,
                    (source, detail_type, Jsonb(detail)),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError("INSERT into pipeline_events returned no id")
        return int(row[0])

    def claim_next_event(self, conn: psycopg.Connection[Any]) -> EventRecord | None:
        """Claim the oldest pending event using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, source, detail_type, detail, attempts
                FROM pipeline_events
                WHERE status = 'pending'
                  AND attempts < %s
                ORDER BY created_at, id
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts,),
            )
            row = cur.fetchone()

        if row is None:
            conn.commit()
            return None

        conn.execute(
            """
            UPDATE pipeline_events
            SET status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        return EventRecord(
            id=row["id"],
            source=row["source"],
            detail_type=row["detail_type"],
            detail=row["detail"],
            status="processing",
            attempts=row["attempts"],
        )

    def mark_done(self, event_id: int) -> None:
        """Mark an event as delivered."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE pipeline_events
                SET status = 'done', error_message = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (event_id,),
            )
            conn.commit()

    def mark_failed(self, event_id: int, error: str) -> None:
        """Mark an event as permanently undeliverable."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE pipeline_events
                SET status = 'failed', attempts = attempts + 1,
                    error_message = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (error, event_id),
            )
            conn.commit()

    def release_for_retry(self, event_id: int, error: str) -> None:
        """Increment attempt count and return the event to pending."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE pipeline_events
                SET attempts = attempts + 1, status = 'pending', error_message = %s,
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (error, event_id),
            )
            conn.commit()

    def requeue_stale(self, older_than_seconds: int) -> int:
        """Return events whose worker died mid-delivery to pending. Returns the count."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE pipeline_events
                    SET status = 'pending', locked_at = NULL, updated_at = NOW()
                    WHERE status = 'processing'
                      AND locked_at < NOW() - make_interval(secs => %s)
                    """,
                    (older_than_seconds,),
                )
                count = cur.rowcount
            conn.commit()
        return count

    def find_by_id(self, event_id: int) -> EventRecord | None:
        """Find an event by ID. Useful for tests."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, source, detail_type, detail, status, attempts,
                           error_message, locked_at, created_at, updated_at
                    FROM pipeline_events
                    WHERE id = %s
                    """,
                    (event_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return EventRecord(
            id=row["id"],
            source=row["source"],
            detail_type=row["detail_type"],
            detail=row["detail"],
            status=row["status"],
            attempts=row["attempts"],
            error_message=row["error_message"],
            locked_at=row["locked_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
