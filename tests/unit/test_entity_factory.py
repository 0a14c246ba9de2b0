"""Tests for EntityExtractorFactory."""

from unittest.mock import patch

import pytest

from docpipe.config.settings import Settings
from docpipe.documents.models import Entity
from docpipe.entities.base import BaseEntityExtractor
from docpipe.entities.extractor import LlmEntityExtractor
from docpipe.entities.factory import EntityExtractorFactory


class TestEntityExtractorFactory:
    def test_creates_offline_extractor_for_example_provider(self) -> None:
        settings = Settings(entity_provider="example", _env_file=None)
        extractor = EntityExtractorFactory.create(settings)
        assert isinstance(extractor, BaseEntityExtractor)
        assert extractor.detect_entities("Total: $50") == [Entity("$50", "QUANTITY", 1.0)]

    def test_creates_openai_extractor(self) -> None:
        settings = Settings(
            entity_provider="openai",
            entity_openai_api_key="openai-key",
            entity_openai_model_name="gpt-4o",
            entity_openai_timeout_seconds=42,
            _env_file=None,
        )
        with patch("docpipe.entities.factory.OpenAIClientAdapter") as mock_adapter:
            extractor = EntityExtractorFactory.create(settings)
        assert isinstance(extractor, LlmEntityExtractor)
        mock_adapter.assert_called_once_with(api_key="openai-key", timeout_seconds=42)

    def test_creates_openai_compatible_extractor(self) -> None:
        settings = Settings(
            entity_provider="openai_compatible",
            entity_openai_compatible_base_url="http://localhost:11434/v1",
            entity_openai_compatible_api_key="local",
            entity_openai_compatible_model_name="llama3",
            _env_file=None,
        )
        with patch("docpipe.entities.factory.OpenAIClientAdapter") as mock_adapter:
            EntityExtractorFactory.create(settings)
        mock_adapter.assert_called_once_with(
            api_key="local",
            timeout_seconds=30,
            base_url="http://localhost:11434/v1",
        )

    def test_openai_compatible_requires_base_url(self) -> None:
        settings = Settings(entity_provider="openai_compatible", _env_file=None)
        with pytest.raises(ValueError, match="base_url is required"):
            EntityExtractorFactory.create(settings)

    def test_provider_is_case_insensitive(self) -> None:
        settings = Settings(entity_provider="EXAMPLE", _env_file=None)
        assert isinstance(EntityExtractorFactory.create(settings), LlmEntityExtractor)

    def test_unknown_provider_raises(self) -> None:
        settings = Settings(entity_provider="comprehend", _env_file=None)
        with pytest.raises(ValueError, match="Unknown entity provider"):
            EntityExtractorFactory.create(settings)
