from typing import Any, ClassVar

from docpipe.documents.models import DocumentRecord, StageName
from docpipe.documents.store import BaseDocumentStore
from docpipe.entities.base import BaseEntityExtractor
from docpipe.events.base import BaseEventChannel
from docpipe.events.models import CLASSIFICATION_SOURCE, DOCUMENT_CLASSIFIED
from docpipe.stages.base import StageOutcome, StageProcessor

UNKNOWN_LABEL = "Unknown"
ENTITY_TEXT_LIMIT = 5000

# First match wins, so the order doubles as the tie-break.
CLASSIFICATION_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Invoice", ("invoice", "bill", "amount due", "total")),
    ("Receipt", ("receipt", "purchased", "transaction")),
    ("ID Document", ("license", "driver", "identification")),
    ("Contract", ("contract", "agreement")),
)


def classify_text(text: str) -> str:
    """Label a document by literal keyword matches on its lower-cased text."""
    lowered = text.lower()
    for label, keywords in CLASSIFICATION_RULES:
        if any(keyword in lowered for keyword in keywords):
            return label
    return UNKNOWN_LABEL


class ClassificationProcessor(StageProcessor):
    """Labels the document and attaches the entities found in its text."""

    stage = StageName.CLASSIFICATION
    outbound_source = CLASSIFICATION_SOURCE
    outbound_detail_type = DOCUMENT_CLASSIFIED
    required_fields: ClassVar[tuple[str, ...]] = ("extractedText",)

    def __init__(
        self,
        store: BaseDocumentStore,
        channel: BaseEventChannel,
        entity_extractor: BaseEntityExtractor,
        timeout_seconds: float | None = 180,
    ) -> None:
        super().__init__(store, channel, timeout_seconds)
        self._entity_extractor = entity_extractor

    def execute(self, detail: dict[str, Any], record: DocumentRecord) -> StageOutcome:
        extracted_text: str = detail["extractedText"]
        classification = classify_text(extracted_text)
        entities = [
            entity.to_dict()
            for entity in self._entity_extractor.detect_entities(
                extracted_text[:ENTITY_TEXT_LIMIT]
            )
        ]
        return StageOutcome(
            fields={"classification": classification, "entities": entities},
            result={"classification": classification, "entities": entities},
            outbound={
                "documentId": record.document_id,
                "extractedText": extracted_text,
                "classification": classification,
                "entities": entities,
            },
        )

    def replay(self, record: DocumentRecord, detail: dict[str, Any]) -> dict[str, Any] | None:
        return {
            "documentId": record.document_id,
            "extractedText": record.extracted_text or detail.get("extractedText", ""),
            "classification": record.classification,
            "entities": record.entities or [],
        }
