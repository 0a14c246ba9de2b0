class EntityExtractionError(Exception):
    """Raised when entity extraction fails."""


class EntityExtractionValidationError(EntityExtractionError):
    """Raised when the provider response does not describe a valid entity list."""


class EntityExtractionNetworkError(EntityExtractionError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
