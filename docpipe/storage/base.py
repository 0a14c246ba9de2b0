from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class WriteLocation:
    """A short-lived, single-key write destination handed to the uploading client."""

    url: str
    expires_at: int
    method: str = "PUT"
    headers: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "url": self.url,
            "method": self.method,
            "headers": dict(self.headers),
            "expiresAt": self.expires_at,
        }


class BaseBlobStorage(ABC):
    """Contract for the blob storage that holds raw uploaded files."""

    @property
    @abstractmethod
    def bucket(self) -> str:
        """Identifier of the bucket/container objects are written to."""

    @abstractmethod
    def create_write_location(
        self, key: str, content_type: str, expires_in: int
    ) -> WriteLocation:
        """Issue a write location for exactly one key, valid for ``expires_in`` seconds."""

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        """Store an object.

        Raises:
            StorageUploadFailure: if the object cannot be written.
        """

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Read an object's bytes.

        Raises:
            FileNotFoundError: if no object exists under ``key``.
        """
