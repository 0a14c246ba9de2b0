from abc import ABC, abstractmethod


class BaseTextDetector(ABC):
    """Contract for the OCR collaborator used by the extraction stage."""

    @abstractmethod
    def detect_lines(self, bucket: str, key: str) -> list[str]:
        """Return the recognized text lines of a stored object, in reading order."""
