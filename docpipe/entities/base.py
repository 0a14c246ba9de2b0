from abc import ABC, abstractmethod

from docpipe.documents.models import Entity


class BaseEntityExtractor(ABC):
    """Contract for the entity-extraction collaborator."""

    @abstractmethod
    def detect_entities(self, text: str) -> list[Entity]:
        """Detect named entities in text.

        Args:
            text: Extracted document text, at most a few thousand characters.

        Returns:
            Entities in the order the provider reported them.

        Raises:
            EntityExtractionError: on any failure.
        """


class BaseChatClient(ABC):
    """Chat-completion transport used by ``LlmEntityExtractor``.

    Implementations send one system and one user prompt and must constrain
    the reply to ``json_schema``. The raw reply text is returned unparsed;
    validation happens in the extractor.
    """

    @abstractmethod
    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str: ...
