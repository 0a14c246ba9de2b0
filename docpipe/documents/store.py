"""Document Record Store contract, mutation paths and the in-memory backend."""

import copy
import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from docpipe.documents.exceptions import (
    DocumentAlreadyExistsError,
    DocumentNotFoundError,
    InvalidMutationError,
    StageTransitionError,
)
from docpipe.documents.models import (
    STAGE_TRANSITIONS,
    DocumentRecord,
    DocumentStatus,
    StageName,
    StageState,
    StageStatus,
    allowed_predecessors,
    new_record,
)

TOP_LEVEL_FIELDS = frozenset(
    {"status", "stage", "extracted_text", "classification", "entities", "summary", "error_message"}
)
STAGE_FIELDS = frozenset({"status", "timestamp", "error_message", "result"})
IMMUTABLE_FIELDS = frozenset(
    {"document_id", "file_name", "file_type", "storage_key", "upload_timestamp"}
)


@dataclass(frozen=True)
class DocumentMetadata:
    """Immutable metadata captured at ingestion."""

    file_name: str
    file_type: str
    storage_key: str
    created_at: int | None = None


@dataclass(frozen=True)
class StageGuard:
    """Compare-and-swap condition on one stage sub-record.

    The write applies only while the stage's current status is in ``allowed``.
    ``claim_token`` additionally pins the sub-record timestamp written by the
    claiming delivery; ``stale_before`` also accepts a ``processing`` claim
    older than that timestamp.
    """

    stage: StageName
    allowed: frozenset[StageStatus]
    claim_token: int | None = None
    stale_before: int | None = None

    def holds(self, state: StageState) -> bool:
        if self.claim_token is not None and state.timestamp != self.claim_token:
            return False
        if state.status in self.allowed:
            return True
        return (
            self.stale_before is not None
            and state.status == StageStatus.PROCESSING
            and state.timestamp is not None
            and state.timestamp < self.stale_before
        )


@dataclass
class ParsedMutation:
    """A validated update split into top-level columns and stage sub-record fields."""

    top_level: dict[str, Any] = field(default_factory=dict)
    stage_fields: dict[StageName, dict[str, Any]] = field(default_factory=dict)
    guards: list[StageGuard] = field(default_factory=list)


def parse_mutation(
    mutation: Mapping[str, Any],
    guard: StageGuard | None = None,
) -> ParsedMutation:
    """Validate dotted mutation paths and derive the stage guards for the write.

    Raises:
        InvalidMutationError: for unknown, immutable or malformed paths.
        StageTransitionError: when a guard would allow a forbidden transition.
    """
    if not mutation:
        raise InvalidMutationError("Mutation must not be empty")

    parsed = ParsedMutation()
    for path, value in mutation.items():
        parts = path.split(".")
        if len(parts) == 1:
            _parse_top_level(parsed, path, value)
        elif len(parts) == 3 and parts[0] == "stages":
            _parse_stage_field(parsed, parts[1], parts[2], value)
        else:
            raise InvalidMutationError(f"Unknown mutation path '{path}'")

    parsed.guards = _resolve_guards(parsed, guard)
    return parsed


def _parse_top_level(parsed: ParsedMutation, name: str, value: Any) -> None:
    if name in IMMUTABLE_FIELDS:
        raise InvalidMutationError(f"Field '{name}' is immutable")
    if name not in TOP_LEVEL_FIELDS:
        raise InvalidMutationError(f"Unknown field '{name}'")
    try:
        if name == "status":
            value = DocumentStatus(value)
        elif name == "stage":
            value = StageName(value)
    except ValueError as exc:
        raise InvalidMutationError(f"Invalid value for '{name}': {value!r}") from exc
    parsed.top_level[name] = value


def _parse_stage_field(parsed: ParsedMutation, stage: str, name: str, value: Any) -> None:
    try:
        stage_name = StageName(stage)
    except ValueError as exc:
        raise InvalidMutationError(f"Unknown stage '{stage}'") from exc
    if name not in STAGE_FIELDS:
        raise InvalidMutationError(f"Unknown stage field '{name}'")
    if name == "status":
        try:
            value = StageStatus(value)
        except ValueError as exc:
            raise InvalidMutationError(f"Invalid stage status {value!r}") from exc
    parsed.stage_fields.setdefault(stage_name, {})[name] = value


def _resolve_guards(parsed: ParsedMutation, guard: StageGuard | None) -> list[StageGuard]:
    guards: list[StageGuard] = []
    for stage, fields in parsed.stage_fields.items():
        target = fields.get("status")
        if guard is not None and guard.stage == stage:
            if target is not None:
                _check_guard_transitions(guard, target)
            guards.append(guard)
        elif target is not None:
            predecessors = allowed_predecessors(target)
            if not predecessors:
                raise StageTransitionError(f"No stage may transition into '{target}'")
            guards.append(StageGuard(stage=stage, allowed=predecessors))
    if guard is not None and guard.stage not in parsed.stage_fields:
        guards.append(guard)
    return guards


def _check_guard_transitions(guard: StageGuard, target: StageStatus) -> None:
    for current in guard.allowed:
        if target not in STAGE_TRANSITIONS[current]:
            raise StageTransitionError(
                f"Illegal transition for stage '{guard.stage}': {current} -> {target}"
            )
    if guard.stale_before is not None and target != StageStatus.PROCESSING:
        raise StageTransitionError("Only a claim may re-enter a stale processing stage")


def apply_mutation(record: DocumentRecord, parsed: ParsedMutation) -> None:
    for name, value in parsed.top_level.items():
        setattr(record, name, copy.deepcopy(value))
    for stage, fields in parsed.stage_fields.items():
        state = record.stages.setdefault(stage, StageState())
        for name, value in fields.items():
            setattr(state, name, copy.deepcopy(value))


class BaseDocumentStore(ABC):
    """Durable keyed storage for one record per document."""

    @abstractmethod
    def create(self, document_id: str, metadata: DocumentMetadata) -> DocumentRecord:
        """Create the initial record for a new document.

        Raises:
            DocumentAlreadyExistsError: if ``document_id`` is already in use.
        """

    @abstractmethod
    def update(
        self,
        document_id: str,
        mutation: Mapping[str, Any],
        guard: StageGuard | None = None,
    ) -> DocumentRecord:
        """Atomically apply a partial update expressed as dotted path -> value.

        Raises:
            DocumentNotFoundError: if no record exists for ``document_id``.
            InvalidMutationError: if a path is unknown or immutable.
            StageTransitionError: if a stage guard does not hold.
        """

    @abstractmethod
    def get(self, document_id: str) -> DocumentRecord:
        """Return the current record.

        Raises:
            DocumentNotFoundError: if no record exists for ``document_id``.
        """


class InMemoryDocumentStore(BaseDocumentStore):
    """Process-local store used by the ``memory`` backend and in tests."""

    def __init__(self) -> None:
        self._records: dict[str, DocumentRecord] = {}
        self._lock = threading.Lock()

    def create(self, document_id: str, metadata: DocumentMetadata) -> DocumentRecord:
        record = new_record(
            document_id,
            metadata.file_name,
            metadata.file_type,
            metadata.storage_key,
            created_at=metadata.created_at,
        )
        with self._lock:
            if document_id in self._records:
                raise DocumentAlreadyExistsError(f"Document {document_id} already exists")
            self._records[document_id] = record
            return copy.deepcopy(record)

    def update(
        self,
        document_id: str,
        mutation: Mapping[str, Any],
        guard: StageGuard | None = None,
    ) -> DocumentRecord:
        parsed = parse_mutation(mutation, guard)
        with self._lock:
            current = self._records.get(document_id)
            if current is None:
                raise DocumentNotFoundError(f"Document {document_id} not found")
            for stage_guard in parsed.guards:
                state = current.stages[stage_guard.stage]
                if not stage_guard.holds(state):
                    raise StageTransitionError(
                        f"Stage '{stage_guard.stage}' of document {document_id} "
                        f"is '{state.status}', write rejected"
                    )
            updated = copy.deepcopy(current)
            apply_mutation(updated, parsed)
            self._records[document_id] = updated
            return copy.deepcopy(updated)

    def get(self, document_id: str) -> DocumentRecord:
        with self._lock:
            record = self._records.get(document_id)
            if record is None:
                raise DocumentNotFoundError(f"Document {document_id} not found")
            return copy.deepcopy(record)
