from typing import Any, ClassVar

from docpipe.documents.models import DocumentRecord, StageName
from docpipe.documents.store import BaseDocumentStore
from docpipe.events.base import BaseEventChannel
from docpipe.events.models import EXTRACTION_SOURCE, TEXT_EXTRACTED
from docpipe.ocr.base import BaseTextDetector
from docpipe.stages.base import StageOutcome, StageProcessor


class ExtractionProcessor(StageProcessor):
    """Turns the stored upload into ``extractedText``."""

    stage = StageName.EXTRACTION
    outbound_source = EXTRACTION_SOURCE
    outbound_detail_type = TEXT_EXTRACTED
    required_fields: ClassVar[tuple[str, ...]] = ("storageKey", "bucketIdentifier")

    def __init__(
        self,
        store: BaseDocumentStore,
        channel: BaseEventChannel,
        text_detector: BaseTextDetector,
        timeout_seconds: float | None = 300,
    ) -> None:
        super().__init__(store, channel, timeout_seconds)
        self._text_detector = text_detector

    def execute(self, detail: dict[str, Any], record: DocumentRecord) -> StageOutcome:
        lines = self._text_detector.detect_lines(
            detail["bucketIdentifier"], detail["storageKey"]
        )
        extracted_text = "\n".join(lines)
        return StageOutcome(
            fields={"extracted_text": extracted_text},
            result={"extractedText": extracted_text},
            outbound={"documentId": record.document_id, "extractedText": extracted_text},
        )

    def replay(self, record: DocumentRecord, detail: dict[str, Any]) -> dict[str, Any] | None:
        return {"documentId": record.document_id, "extractedText": record.extracted_text or ""}
