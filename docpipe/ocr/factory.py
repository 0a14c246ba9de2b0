from docpipe.config.settings import Settings
from docpipe.ocr.base import BaseTextDetector
from docpipe.ocr.pdf_text_detector import PdfTextDetector
from docpipe.pdf.base import BasePdfExtractor
from docpipe.pdf.pdfplumber_adapter import PdfPlumberAdapter
from docpipe.pdf.pymupdf_adapter import PyMuPdfAdapter
from docpipe.storage.base import BaseBlobStorage


class TextDetectorFactory:
    """Creates the text detector for the configured PDF engine."""

    PDF_ENGINES: dict[str, type[BasePdfExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings, storage: BaseBlobStorage) -> BaseTextDetector:
        engine = settings.pdf_engine.lower()
        extractor_cls = cls.PDF_ENGINES.get(engine)
        if extractor_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.PDF_ENGINES)}"
            )
        return PdfTextDetector(storage, extractor_cls())
