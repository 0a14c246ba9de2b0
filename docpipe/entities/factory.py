from docpipe.config.settings import Settings
from docpipe.entities.base import BaseEntityExtractor
from docpipe.entities.example_client_adapter import ExampleClientAdapter
from docpipe.entities.extractor import LlmEntityExtractor
from docpipe.entities.openai_client_adapter import OpenAIClientAdapter


class EntityExtractorFactory:
    """Creates the configured entity extractor."""

    PROVIDERS = ("example", "openai", "openai_compatible")

    @classmethod
    def create(cls, settings: Settings) -> BaseEntityExtractor:
        provider = settings.entity_provider.lower()
        if provider == "example":
            return LlmEntityExtractor(client=ExampleClientAdapter(), model="example")
        if provider == "openai":
            client = OpenAIClientAdapter(
                api_key=settings.entity_openai_api_key,
                timeout_seconds=settings.entity_openai_timeout_seconds,
            )
            return LlmEntityExtractor(client=client, model=settings.entity_openai_model_name)
        if provider == "openai_compatible":
            base_url = settings.entity_openai_compatible_base_url.strip()
            if not base_url:
                raise ValueError(
                    "entity_openai_compatible_base_url is required for "
                    "entity_provider=openai_compatible"
                )
            client = OpenAIClientAdapter(
                api_key=settings.entity_openai_compatible_api_key,
                timeout_seconds=settings.entity_openai_timeout_seconds,
                base_url=base_url,
            )
            return LlmEntityExtractor(
                client=client,
                model=settings.entity_openai_compatible_model_name,
            )
        raise ValueError(
            f"Unknown entity provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
