"""Shared skeleton for the four stage processors.

Each processor claims its stage on the record, runs one capability call under
a timeout, writes the result and only then publishes the event that starts
the next stage. Failures are written to the record and re-raised so the
delivery layer can redeliver.
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any, ClassVar

from docpipe.documents.exceptions import (
    DocumentNotFoundError,
    InvalidEventError,
    StageFailure,
    StageTimeoutError,
    StageTransitionError,
)
from docpipe.documents.models import (
    DocumentRecord,
    DocumentStatus,
    StageName,
    StageStatus,
    now_ms,
    upstream_of,
)
from docpipe.documents.store import BaseDocumentStore, StageGuard
from docpipe.events.base import BaseEventChannel
from docpipe.events.models import PipelineEvent
from docpipe.logging.logger import Log


@dataclass
class StageOutcome:
    """What a successful capability call contributes to the record and the next stage."""

    fields: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    outbound: dict[str, Any] | None = None


class StageProcessor(ABC):
    stage: ClassVar[StageName]
    outbound_source: ClassVar[str | None] = None
    outbound_detail_type: ClassVar[str | None] = None
    required_fields: ClassVar[tuple[str, ...]] = ()
    completes_document: ClassVar[bool] = False

    def __init__(
        self,
        store: BaseDocumentStore,
        channel: BaseEventChannel,
        timeout_seconds: float | None = None,
        stale_claim_seconds: float | None = None,
    ) -> None:
        self._store = store
        self._channel = channel
        self._timeout_seconds = timeout_seconds
        # a claim older than this is treated as abandoned by a dead worker
        self._stale_claim_seconds = (
            stale_claim_seconds if stale_claim_seconds is not None else timeout_seconds
        )

    @property
    def timeout_seconds(self) -> float | None:
        return self._timeout_seconds

    @property
    def stale_claim_seconds(self) -> float | None:
        return self._stale_claim_seconds

    @abstractmethod
    def execute(self, detail: dict[str, Any], record: DocumentRecord) -> StageOutcome:
        """Invoke the stage's capability with the upstream payload."""

    @abstractmethod
    def replay(self, record: DocumentRecord, detail: dict[str, Any]) -> dict[str, Any] | None:
        """Rebuild the continuation payload of an already completed stage."""

    def __call__(self, event: PipelineEvent) -> None:
        self.handle(event)

    def handle(self, event: PipelineEvent) -> None:
        """Process one inbound event for one document.

        Raises:
            InvalidEventError: if the event lacks required fields.
            DocumentNotFoundError: if the document has no record.
            StageTransitionError: if another delivery holds the stage claim.
            StageFailure: after the failure has been recorded on the document.
        """
        document_id = self._validate(event.detail)
        record = self._store.get(document_id)
        state = record.stage_state(self.stage)

        if state.status == StageStatus.COMPLETED:
            Log.info(
                f"Stage '{self.stage}' already completed, re-emitting continuation",
                document_id=document_id,
            )
            self._emit(self.replay(record, event.detail))
            return

        upstream = upstream_of(self.stage)
        if upstream is not None and record.stage_state(upstream).status != StageStatus.COMPLETED:
            Log.warning(
                f"Stage '{upstream}' is not completed, ignoring '{self.stage}' delivery",
                document_id=document_id,
            )
            return

        claim_token = self._claim(document_id)
        outcome = self._run(document_id, claim_token, event.detail, record)
        self._emit(outcome.outbound)

    def _validate(self, detail: dict[str, Any]) -> str:
        document_id = detail.get("documentId")
        if not isinstance(document_id, str) or not document_id:
            raise InvalidEventError(f"Stage '{self.stage}' event has no documentId")
        missing = [name for name in self.required_fields if name not in detail]
        if missing:
            raise InvalidEventError(
                f"Stage '{self.stage}' event for {document_id} is missing {missing}"
            )
        return document_id

    def _claim(self, document_id: str) -> int:
        claim_token = now_ms()
        stale_before = (
            claim_token - int(self._stale_claim_seconds * 1000)
            if self._stale_claim_seconds is not None
            else None
        )
        guard = StageGuard(
            stage=self.stage,
            allowed=frozenset({StageStatus.PENDING, StageStatus.FAILED}),
            stale_before=stale_before,
        )
        self._store.update(
            document_id,
            {
                "status": DocumentStatus.PROCESSING,
                "stage": self.stage,
                "error_message": None,
                f"stages.{self.stage}.status": StageStatus.PROCESSING,
                f"stages.{self.stage}.timestamp": claim_token,
                f"stages.{self.stage}.error_message": None,
            },
            guard=guard,
        )
        Log.info(f"Stage '{self.stage}' processing", document_id=document_id)
        return claim_token

    def _run(
        self,
        document_id: str,
        claim_token: int,
        detail: dict[str, Any],
        record: DocumentRecord,
    ) -> StageOutcome:
        try:
            outcome = self._execute_with_timeout(detail, record)
            mutation: dict[str, Any] = dict(outcome.fields)
            mutation[f"stages.{self.stage}.status"] = StageStatus.COMPLETED
            mutation[f"stages.{self.stage}.result"] = outcome.result
            if self.completes_document:
                mutation["status"] = DocumentStatus.COMPLETED
            self._store.update(
                document_id,
                mutation,
                guard=StageGuard(
                    stage=self.stage,
                    allowed=frozenset({StageStatus.PROCESSING}),
                    claim_token=claim_token,
                ),
            )
        except StageTransitionError:
            Log.warning(
                f"Lost the '{self.stage}' claim to another delivery", document_id=document_id
            )
            raise
        except Exception as exc:
            message = exc.reason if isinstance(exc, StageFailure) else str(exc) or type(exc).__name__
            self._record_failure(document_id, claim_token, message)
            failure_cls = StageTimeoutError if isinstance(exc, StageTimeoutError) else StageFailure
            raise failure_cls(self.stage, document_id, message) from exc

        Log.info(f"Stage '{self.stage}' completed", document_id=document_id)
        return outcome

    def _execute_with_timeout(
        self, detail: dict[str, Any], record: DocumentRecord
    ) -> StageOutcome:
        if self._timeout_seconds is None:
            return self.execute(detail, record)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"stage-{self.stage}")
        try:
            future = executor.submit(self.execute, detail, record)
            try:
                return future.result(timeout=self._timeout_seconds)
            except FutureTimeoutError as exc:
                raise StageTimeoutError(
                    self.stage,
                    record.document_id,
                    f"timed out after {self._timeout_seconds:g}s",
                ) from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _record_failure(self, document_id: str, claim_token: int, message: str) -> None:
        Log.error(f"Stage '{self.stage}' failed: {message}", document_id=document_id)
        try:
            self._store.update(
                document_id,
                {
                    "status": DocumentStatus.FAILED,
                    "error_message": message,
                    f"stages.{self.stage}.status": StageStatus.FAILED,
                    f"stages.{self.stage}.error_message": message,
                },
                guard=StageGuard(
                    stage=self.stage,
                    allowed=frozenset({StageStatus.PROCESSING}),
                    claim_token=claim_token,
                ),
            )
        except (StageTransitionError, DocumentNotFoundError) as write_exc:
            Log.warning(
                f"Could not record '{self.stage}' failure: {write_exc}",
                document_id=document_id,
            )
        except Exception:
            Log.exception(f"Could not record '{self.stage}' failure", document_id=document_id)

    def _emit(self, outbound: dict[str, Any] | None) -> None:
        if outbound is None or self.outbound_source is None or self.outbound_detail_type is None:
            return
        self._channel.publish(self.outbound_source, self.outbound_detail_type, outbound)
