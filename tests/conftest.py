import io
from pathlib import Path

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docpipe.config.settings import Settings
from docpipe.documents.models import Entity
from docpipe.entities.base import BaseEntityExtractor
from docpipe.ocr.base import BaseTextDetector
from docpipe.pipeline import Pipeline, build_pipeline


class StaticTextDetector(BaseTextDetector):
    """Returns fixed lines for every object and remembers what it was asked for."""

    def __init__(self, lines: list[str]) -> None:
        self.lines = lines
        self.calls: list[tuple[str, str]] = []

    def detect_lines(self, bucket: str, key: str) -> list[str]:
        self.calls.append((bucket, key))
        return list(self.lines)


class StaticEntityExtractor(BaseEntityExtractor):
    def __init__(self, entities: list[Entity] | None = None) -> None:
        self.entities = entities or []
        self.calls: list[str] = []

    def detect_entities(self, text: str) -> list[Entity]:
        self.calls.append(text)
        return list(self.entities)


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a single-page invoice PDF with two known lines."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Invoice #1")
    c.drawString(72, 700, "Total: $50")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def memory_settings(tmp_path: Path) -> Settings:
    return Settings(
        pipeline_backend="memory",
        storage_root=str(tmp_path / "files"),
        storage_bucket="test-bucket",
        public_base_url="http://testserver",
        upload_signing_secret="test-secret",
        entity_provider="example",
        _env_file=None,
    )


@pytest.fixture()
def text_detector() -> StaticTextDetector:
    return StaticTextDetector(["Invoice #1", "Total: $50"])


@pytest.fixture()
def entity_extractor() -> StaticEntityExtractor:
    return StaticEntityExtractor([Entity(text="$50", type="QUANTITY", confidence=0.9)])


@pytest.fixture()
def memory_pipeline(
    memory_settings: Settings,
    text_detector: StaticTextDetector,
    entity_extractor: StaticEntityExtractor,
) -> Pipeline:
    return build_pipeline(
        memory_settings,
        text_detector=text_detector,
        entity_extractor=entity_extractor,
    )
