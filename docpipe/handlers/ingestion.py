import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from docpipe.documents.exceptions import BadRequestError
from docpipe.documents.models import now_ms, storage_key_for
from docpipe.documents.store import BaseDocumentStore, DocumentMetadata
from docpipe.logging.logger import Log
from docpipe.storage.base import BaseBlobStorage, WriteLocation

UPLOAD_URL_TTL_SECONDS = 300


@dataclass(frozen=True)
class IngestionResult:
    document_id: str
    write_location: WriteLocation

    def to_dict(self) -> dict[str, Any]:
        return {"documentId": self.document_id, "writeLocation": self.write_location.to_dict()}


class IngestionHandler:
    """Allocates a document id, issues an upload location and creates the record."""

    def __init__(
        self,
        store: BaseDocumentStore,
        storage: BaseBlobStorage,
        upload_url_ttl_seconds: int = UPLOAD_URL_TTL_SECONDS,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._storage = storage
        self._ttl = upload_url_ttl_seconds
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)

    def ingest(self, payload: Any) -> IngestionResult:
        """Start a new document.

        Raises:
            BadRequestError: if ``payload`` is not ``{fileName, fileType}``.
        """
        file_name, file_type = self._validate(payload)
        document_id = self._id_factory()
        storage_key = storage_key_for(document_id, file_name)
        write_location = self._storage.create_write_location(storage_key, file_type, self._ttl)
        self._store.create(
            document_id,
            DocumentMetadata(
                file_name=file_name,
                file_type=file_type,
                storage_key=storage_key,
                created_at=now_ms(),
            ),
        )
        Log.info(f"Ingested '{file_name}' ({file_type}), awaiting upload", document_id=document_id)
        return IngestionResult(document_id=document_id, write_location=write_location)

    @staticmethod
    def _validate(payload: Any) -> tuple[str, str]:
        if not isinstance(payload, dict):
            raise BadRequestError("Request body must be a JSON object")
        file_name = payload.get("fileName")
        file_type = payload.get("fileType")
        if not isinstance(file_name, str) or not file_name.strip():
            raise BadRequestError("fileName must be a non-empty string")
        if not isinstance(file_type, str) or not file_type.strip():
            raise BadRequestError("fileType must be a non-empty string")
        if "/" in file_name or "\\" in file_name or file_name in {".", ".."}:
            raise BadRequestError("fileName must not contain path separators")
        return file_name, file_type.strip()
