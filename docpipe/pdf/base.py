from abc import ABC, abstractmethod


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    @abstractmethod
    def extract_lines(self, pdf_bytes: bytes) -> list[str]:
        """Extract the text lines of a PDF in reading order.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            Non-empty, stripped text lines, page by page.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """

    @staticmethod
    def split_lines(page_text: str) -> list[str]:
        return [line.strip() for line in page_text.splitlines() if line.strip()]
