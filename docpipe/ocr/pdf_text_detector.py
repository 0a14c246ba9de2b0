from docpipe.logging.logger import Log
from docpipe.ocr.base import BaseTextDetector
from docpipe.pdf.base import BasePdfExtractor
from docpipe.storage.base import BaseBlobStorage


class PdfTextDetector(BaseTextDetector):
    """Reads the object from blob storage and extracts its text lines."""

    def __init__(self, storage: BaseBlobStorage, pdf_extractor: BasePdfExtractor) -> None:
        self._storage = storage
        self._pdf_extractor = pdf_extractor

    def detect_lines(self, bucket: str, key: str) -> list[str]:
        if bucket != self._storage.bucket:
            raise ValueError(f"Unknown bucket '{bucket}', expected '{self._storage.bucket}'")
        raw_bytes = self._storage.read(key)
        Log.debug(f"Loaded {len(raw_bytes)} bytes from {key}")
        return self._pdf_extractor.extract_lines(raw_bytes)
