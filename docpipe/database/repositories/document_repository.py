from collections.abc import Mapping
from enum import Enum
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docpipe.database.connection import get_connection
from docpipe.documents.exceptions import (
    DocumentAlreadyExistsError,
    DocumentNotFoundError,
    StageTransitionError,
)
from docpipe.documents.models import (
    DocumentRecord,
    DocumentStatus,
    StageName,
    StageState,
    new_record,
)
from docpipe.documents.store import (
    BaseDocumentStore,
    DocumentMetadata,
    ParsedMutation,
    StageGuard,
    parse_mutation,
)

_COLUMNS = """
    document_id, file_name, file_type, storage_key, upload_timestamp,
    status, stage, stages, extracted_text, classification, entities,
    summary, error_message
"""

_STAGE_JSON_KEYS = {
    "status": "status",
    "timestamp": "timestamp",
    "error_message": "errorMessage",
    "result": "result",
}


def _plain(value: Any) -> Any:
    """Unwrap enum members; psycopg would otherwise dump the member name."""
    if isinstance(value, Enum):
        return value.value
    return value


def _row_to_record(row: dict[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        document_id=row["document_id"],
        file_name=row["file_name"],
        file_type=row["file_type"],
        storage_key=row["storage_key"],
        upload_timestamp=row["upload_timestamp"],
        status=DocumentStatus(row["status"]),
        stage=StageName(row["stage"]),
        stages={
            StageName(name): StageState.from_dict(state)
            for name, state in row["stages"].items()
        },
        extracted_text=row["extracted_text"],
        classification=row["classification"],
        entities=row["entities"],
        summary=row["summary"],
        error_message=row["error_message"],
    )


def _build_set_clause(parsed: ParsedMutation) -> tuple[list[str], list[Any]]:
    parts: list[str] = []
    params: list[Any] = []
    for name, value in parsed.top_level.items():
        parts.append(f"{name} = %s")
        if name == "entities":
            params.append(Jsonb(value) if value is not None else None)
        else:
            params.append(_plain(value))

    if parsed.stage_fields:
        # Nested jsonb_set calls: placeholders appear in build order.
        expr = "stages"
        for stage, fields in parsed.stage_fields.items():
            for name, value in fields.items():
                expr = f"jsonb_set({expr}, %s::text[], %s, true)"
                params.append([stage.value, _STAGE_JSON_KEYS[name]])
                params.append(Jsonb(_plain(value)))
        parts.append(f"stages = {expr}")

    parts.append("updated_at = NOW()")
    return parts, params


def _build_guard_clause(guard: StageGuard) -> tuple[str, list[Any]]:
    status_path = [guard.stage.value, "status"]
    timestamp_path = [guard.stage.value, "timestamp"]
    condition = "(stages #>> %s::text[]) = ANY(%s)"
    params: list[Any] = [status_path, [status.value for status in guard.allowed]]

    if guard.stale_before is not None:
        condition = (
            f"({condition} OR ((stages #>> %s::text[]) = 'processing' "
            "AND (stages #>> %s::text[])::bigint < %s))"
        )
        params.extend([status_path, timestamp_path, guard.stale_before])

    if guard.claim_token is not None:
        condition = f"{condition} AND (stages #>> %s::text[])::bigint = %s"
        params.extend([timestamp_path, guard.claim_token])

    return condition, params


class DocumentRepository(BaseDocumentStore):
    """Database operations for the documents table."""

    def create(self, document_id: str, metadata: DocumentMetadata) -> DocumentRecord:
        record = new_record(
            document_id,
            metadata.file_name,
            metadata.file_type,
            metadata.storage_key,
            created_at=metadata.created_at,
        )
        stages = {name.value: state.to_dict() for name, state in record.stages.items()}
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents
                    (document_id, file_name, file_type, storage_key,
                     upload_timestamp, status, stage, stages)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (document_id) DO NOTHING
                    RETURNING {_COLUMNS}
                    """,
                    (
                        record.document_id,
                        record.file_name,
                        record.file_type,
                        record.storage_key,
                        record.upload_timestamp,
                        record.status.value,
                        record.stage.value,
                        Jsonb(stages),
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise DocumentAlreadyExistsError(f"Document {document_id} already exists")
        return _row_to_record(row)

    def update(
        self,
        document_id: str,
        mutation: Mapping[str, Any],
        guard: StageGuard | None = None,
    ) -> DocumentRecord:
        """Apply the mutation in one UPDATE whose WHERE clause carries the stage guards.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
            StageTransitionError: if a stage guard does not hold.
        """
        parsed = parse_mutation(mutation, guard)
        set_parts, params = _build_set_clause(parsed)
        where_parts = ["document_id = %s"]
        params.append(document_id)
        for stage_guard in parsed.guards:
            condition, guard_params = _build_guard_clause(stage_guard)
            where_parts.append(condition)
            params.extend(guard_params)

        query = (
            f"UPDATE documents SET {', '.join(set_parts)} "
            f"WHERE {' AND '.join(where_parts)} "
            f"RETURNING {_COLUMNS}"
        )
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)  # type: ignore[arg-type]
                row = cur.fetchone()
                if row is None:
                    cur.execute(
                        "SELECT 1 FROM documents WHERE document_id = %s",
                        (document_id,),
                    )
                    exists = cur.fetchone() is not None
            conn.commit()

        if row is None:
            if not exists:
                raise DocumentNotFoundError(f"Document {document_id} not found")
            stages = ", ".join(g.stage.value for g in parsed.guards)
            raise StageTransitionError(
                f"Guard on stage(s) {stages} of document {document_id} "
                "no longer holds, write rejected"
            )
        return _row_to_record(row)

    def get(self, document_id: str) -> DocumentRecord:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM documents WHERE document_id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _row_to_record(row)
