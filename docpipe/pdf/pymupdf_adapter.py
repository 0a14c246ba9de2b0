import pymupdf

from docpipe.pdf.base import BasePdfExtractor
from docpipe.pdf.exceptions import PdfExtractionError


class PyMuPdfAdapter(BasePdfExtractor):
    """Extracts text lines from PDF using PyMuPDF."""

    def extract_lines(self, pdf_bytes: bytes) -> list[str]:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                lines: list[str] = []
                for page in doc:
                    lines.extend(self.split_lines(page.get_text()))
            return lines
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc
