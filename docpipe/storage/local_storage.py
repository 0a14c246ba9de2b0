import hashlib
import hmac
import time
from pathlib import Path
from urllib.parse import quote, urlencode

from docpipe.documents.exceptions import StorageUploadFailure
from docpipe.storage.base import BaseBlobStorage, WriteLocation


class LocalBlobStorage(BaseBlobStorage):
    """Filesystem-backed blob storage with HMAC-signed upload URLs.

    Objects live at ``{root}/{key}``. Upload URLs point at the API's
    ``PUT /uploads/{key}`` endpoint and carry an expiry plus a signature over
    the key and expiry.
    """

    def __init__(
        self,
        root: Path,
        bucket: str,
        public_base_url: str,
        signing_secret: str,
    ) -> None:
        self._root = root
        self._bucket = bucket
        self._public_base_url = public_base_url.rstrip("/")
        self._secret = signing_secret.encode("utf-8")

    @property
    def bucket(self) -> str:
        return self._bucket

    def create_write_location(
        self, key: str, content_type: str, expires_in: int
    ) -> WriteLocation:
        expires_at = int(time.time()) + expires_in
        query = urlencode({"expires": expires_at, "signature": self.sign(key, expires_at)})
        return WriteLocation(
            url=f"{self._public_base_url}/uploads/{quote(key)}?{query}",
            expires_at=expires_at,
            headers={"Content-Type": content_type},
        )

    def sign(self, key: str, expires_at: int) -> str:
        message = f"{key}\n{expires_at}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def verify_write(
        self, key: str, expires_at: int, signature: str, now: float | None = None
    ) -> None:
        """Check an upload against its signed write location.

        Raises:
            StorageUploadFailure: if the signature does not match or has expired.
        """
        if not hmac.compare_digest(self.sign(key, expires_at), signature):
            raise StorageUploadFailure(f"Invalid upload signature for '{key}'")
        current = time.time() if now is None else now
        if current > expires_at:
            raise StorageUploadFailure(f"Upload location for '{key}' has expired")

    def write(self, key: str, data: bytes) -> None:
        path = self._resolve(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageUploadFailure(f"Failed to store '{key}': {exc}") from exc

    def read(self, key: str) -> bytes:
        path = self._resolve(key)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return path.read_bytes()

    def _resolve(self, key: str) -> Path:
        root = self._root.resolve()
        path = (root / key).resolve()
        if not path.is_relative_to(root):
            raise StorageUploadFailure(f"Key '{key}' escapes the storage root")
        return path
