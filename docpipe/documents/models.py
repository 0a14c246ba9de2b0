"""Document record, stage sub-records and the stage state machine."""

import copy
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class DocumentStatus(StrEnum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class StageName(StrEnum):
    UPLOAD = "upload"
    EXTRACTION = "extraction"
    CLASSIFICATION = "classification"
    SUMMARIZATION = "summarization"
    DISPLAY = "display"


class StageStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


STAGE_ORDER: tuple[StageName, ...] = (
    StageName.UPLOAD,
    StageName.EXTRACTION,
    StageName.CLASSIFICATION,
    StageName.SUMMARIZATION,
    StageName.DISPLAY,
)

# failed -> processing is the re-invocation path of the delivery layer.
STAGE_TRANSITIONS: dict[StageStatus, frozenset[StageStatus]] = {
    StageStatus.PENDING: frozenset({StageStatus.PROCESSING}),
    StageStatus.PROCESSING: frozenset({StageStatus.COMPLETED, StageStatus.FAILED}),
    StageStatus.FAILED: frozenset({StageStatus.PROCESSING}),
    StageStatus.COMPLETED: frozenset(),
}


def allowed_predecessors(target: StageStatus) -> frozenset[StageStatus]:
    """Return every sub-status from which ``target`` may be entered."""
    return frozenset(
        source for source, targets in STAGE_TRANSITIONS.items() if target in targets
    )


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def upstream_of(stage: StageName) -> StageName | None:
    index = STAGE_ORDER.index(stage)
    return STAGE_ORDER[index - 1] if index > 0 else None


def storage_key_for(document_id: str, file_name: str) -> str:
    return f"documents/{document_id}/{file_name}"


@dataclass(frozen=True)
class Entity:
    """A named entity detected in the extracted text."""

    text: str
    type: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "type": self.type, "confidence": self.confidence}


@dataclass
class StageState:
    """Per-stage status sub-record."""

    status: StageStatus = StageStatus.PENDING
    timestamp: int | None = None
    error_message: str | None = None
    result: Any = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": str(self.status)}
        if self.timestamp is not None:
            data["timestamp"] = self.timestamp
        if self.error_message is not None:
            data["errorMessage"] = self.error_message
        if self.result is not None:
            data["result"] = copy.deepcopy(self.result)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StageState":
        return cls(
            status=StageStatus(data.get("status", StageStatus.PENDING)),
            timestamp=data.get("timestamp"),
            error_message=data.get("errorMessage"),
            result=data.get("result"),
        )


@dataclass
class DocumentRecord:
    """The single persisted state object tracking a document through the pipeline."""

    document_id: str
    file_name: str
    file_type: str
    storage_key: str
    upload_timestamp: int
    status: DocumentStatus = DocumentStatus.UPLOADED
    stage: StageName = StageName.UPLOAD
    stages: dict[StageName, StageState] = field(default_factory=dict)
    extracted_text: str | None = None
    classification: str | None = None
    entities: list[dict[str, Any]] | None = None
    summary: str | None = None
    error_message: str | None = None

    def stage_state(self, stage: StageName) -> StageState:
        return self.stages[stage]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the Status API wire shape. Unset fields are omitted."""
        data: dict[str, Any] = {
            "documentId": self.document_id,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "storageKey": self.storage_key,
            "uploadTimestamp": self.upload_timestamp,
            "status": str(self.status),
            "stage": str(self.stage),
            "stages": {str(name): state.to_dict() for name, state in self.stages.items()},
        }
        optional = {
            "extractedText": self.extracted_text,
            "classification": self.classification,
            "entities": copy.deepcopy(self.entities),
            "summary": self.summary,
            "errorMessage": self.error_message,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data


def new_record(
    document_id: str,
    file_name: str,
    file_type: str,
    storage_key: str,
    created_at: int | None = None,
) -> DocumentRecord:
    """Build the initial record: upload completed, every later stage pending."""
    timestamp = created_at if created_at is not None else now_ms()
    stages = {name: StageState() for name in STAGE_ORDER}
    stages[StageName.UPLOAD] = StageState(
        status=StageStatus.COMPLETED, timestamp=timestamp
    )
    return DocumentRecord(
        document_id=document_id,
        file_name=file_name,
        file_type=file_type,
        storage_key=storage_key,
        upload_timestamp=timestamp,
        stages=stages,
    )
