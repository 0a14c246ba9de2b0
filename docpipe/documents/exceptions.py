class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""


class BadRequestError(PipelineError):
    """Raised when an ingestion request is malformed."""


class DocumentNotFoundError(PipelineError):
    """Raised when no record exists for a document id."""


class DocumentAlreadyExistsError(PipelineError):
    """Raised when a record is created twice for the same document id."""


class InvalidMutationError(PipelineError):
    """Raised when an update names an unknown or immutable field."""


class StageTransitionError(PipelineError):
    """Raised when a stage status change is illegal or its guard no longer holds."""


class InvalidEventError(PipelineError):
    """Raised when an inbound event lacks the fields a stage needs."""


class StageFailure(PipelineError):
    """Raised by a stage processor after it recorded a failure on the record."""

    def __init__(self, stage: str, document_id: str, message: str) -> None:
        super().__init__(f"Stage '{stage}' failed for document {document_id}: {message}")
        self.stage = stage
        self.document_id = document_id
        self.reason = message


class StageTimeoutError(StageFailure):
    """Raised when a stage's capability call exceeds its execution timeout."""


class StorageUploadFailure(PipelineError):
    """Raised when a raw file cannot be written to blob storage."""
