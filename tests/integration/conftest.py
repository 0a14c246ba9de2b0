import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from docpipe.config.settings import Settings
from docpipe.database.connection import apply_schema, close_pool, get_connection, init_pool
from docpipe.database.repositories.document_repository import DocumentRepository
from docpipe.database.repositories.event_repository import EventRepository
from docpipe.documents.models import DocumentRecord, storage_key_for
from docpipe.documents.store import DocumentMetadata


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docpipe_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        apply_schema()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to point at one.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[tuple[str, Any]], None, None]:
    cleanup: list[tuple[str, Any]] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for table, row_id in cleanup:
                if table == "pipeline_events":
                    cur.execute("DELETE FROM pipeline_events WHERE id = %s", (row_id,))
                elif table == "documents":
                    cur.execute("DELETE FROM documents WHERE document_id = %s", (row_id,))
        conn.commit()


@pytest.fixture
def document_repo(integration_pool: None) -> DocumentRepository:
    return DocumentRepository()


@pytest.fixture
def event_repo(integration_pool: None, test_settings: Settings) -> EventRepository:
    return EventRepository(test_settings.max_event_attempts)


@pytest.fixture
def seed_document(
    document_repo: DocumentRepository,
    integration_cleanup: list[tuple[str, Any]],
) -> DocumentRecord:
    document_id = uuid.uuid4().hex
    record = document_repo.create(
        document_id,
        DocumentMetadata(
            file_name="invoice.pdf",
            file_type="application/pdf",
            storage_key=storage_key_for(document_id, "invoice.pdf"),
        ),
    )
    integration_cleanup.append(("documents", document_id))
    return record


@pytest.fixture
def drain_events(db_conn: psycopg.Connection[Any]) -> None:
    """Park leftover pending events from other runs so claims see only this test's rows."""
    db_conn.execute(
        "UPDATE pipeline_events SET status = 'failed' WHERE status IN ('pending', 'processing')"
    )
    db_conn.commit()
