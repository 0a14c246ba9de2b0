from typing import Any

from docpipe.documents.models import DocumentRecord, DocumentStatus, StageName
from docpipe.stages.base import StageOutcome, StageProcessor


class FinalizationProcessor(StageProcessor):
    """Marks the document ready for display. Emits nothing."""

    stage = StageName.DISPLAY
    completes_document = True

    def execute(self, detail: dict[str, Any], record: DocumentRecord) -> StageOutcome:
        return StageOutcome(result={"status": DocumentStatus.COMPLETED.value})

    def replay(self, record: DocumentRecord, detail: dict[str, Any]) -> dict[str, Any] | None:
        return None
