from dataclasses import dataclass, field
from typing import Any

UPLOAD_SOURCE = "idp.upload"
EXTRACTION_SOURCE = "idp.extraction"
CLASSIFICATION_SOURCE = "idp.classification"
SUMMARIZATION_SOURCE = "idp.summarization"

DOCUMENT_UPLOADED = "Document Uploaded"
TEXT_EXTRACTED = "Text Extracted"
DOCUMENT_CLASSIFIED = "Document Classified"
DOCUMENT_SUMMARIZED = "Document Summarized"


@dataclass(frozen=True)
class PipelineEvent:
    """A stage-transition event as it travels over the channel."""

    source: str
    detail_type: str
    detail: dict[str, Any] = field(default_factory=dict)

    @property
    def document_id(self) -> str | None:
        value = self.detail.get("documentId")
        return value if isinstance(value, str) else None

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "detailType": self.detail_type, "detail": self.detail}
