import io

import pdfplumber

from docpipe.pdf.base import BasePdfExtractor
from docpipe.pdf.exceptions import PdfExtractionError


class PdfPlumberAdapter(BasePdfExtractor):
    """Extracts text lines from PDF using pdfplumber."""

    def extract_lines(self, pdf_bytes: bytes) -> list[str]:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                lines: list[str] = []
                for page in pdf.pages:
                    lines.extend(self.split_lines(page.extract_text() or ""))
            return lines
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc
