from typing import Any

from docpipe.documents.store import BaseDocumentStore


class StatusQueryHandler:
    """Read-only lookup of a document's full record for polling clients."""

    def __init__(self, store: BaseDocumentStore) -> None:
        self._store = store

    def get_status(self, document_id: str) -> dict[str, Any]:
        """Return the record in its wire shape.

        Raises:
            DocumentNotFoundError: if the document is unknown.
        """
        return self._store.get(document_id).to_dict()
