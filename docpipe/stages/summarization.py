import re
from typing import Any, ClassVar

from docpipe.documents.models import DocumentRecord, StageName
from docpipe.events.models import DOCUMENT_SUMMARIZED, SUMMARIZATION_SOURCE
from docpipe.stages.base import StageOutcome, StageProcessor

SUMMARY_SOURCE_CHARS = 1000
MIN_SENTENCE_CHARS = 10
MAX_SENTENCES = 3

_SENTENCE_END_RE = re.compile(r"[.!?]+")


def summarize_text(extracted_text: str, classification: str | None) -> str:
    """Build the extractive summary sentence for a document.

    Deterministic: the same text and label always give the same string.
    """
    fragments = _SENTENCE_END_RE.split(extracted_text[:SUMMARY_SOURCE_CHARS])
    sentences = [f for f in fragments if len(f.strip()) > MIN_SENTENCE_CHARS]
    key_content = ". ".join(sentences[:MAX_SENTENCES]) + "."
    subject = f"{classification} document" if classification else "document"
    return (
        f"This {subject} contains {len(extracted_text)} characters of text. "
        f"Key content includes: {key_content}"
    )


class SummarizationProcessor(StageProcessor):
    stage = StageName.SUMMARIZATION
    outbound_source = SUMMARIZATION_SOURCE
    outbound_detail_type = DOCUMENT_SUMMARIZED
    required_fields: ClassVar[tuple[str, ...]] = ("extractedText",)

    def execute(self, detail: dict[str, Any], record: DocumentRecord) -> StageOutcome:
        summary = summarize_text(detail["extractedText"], detail.get("classification"))
        return StageOutcome(
            fields={"summary": summary},
            result={"summary": summary},
            outbound={"documentId": record.document_id, "summary": summary},
        )

    def replay(self, record: DocumentRecord, detail: dict[str, Any]) -> dict[str, Any] | None:
        return {"documentId": record.document_id, "summary": record.summary}
