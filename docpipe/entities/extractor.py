"""LLM-backed entity extraction."""

import json
from pathlib import Path

from docpipe.documents.models import Entity
from docpipe.entities.base import BaseChatClient, BaseEntityExtractor
from docpipe.entities.exceptions import EntityExtractionError
from docpipe.entities.prompt_loader import load_json_schema, load_prompt_template
from docpipe.entities.validator import validate_and_build
from docpipe.logging.logger import Log


class LlmEntityExtractor(BaseEntityExtractor):
    """Detects entities by asking a chat model for schema-constrained JSON."""

    def __init__(
        self,
        *,
        client: BaseChatClient,
        model: str,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt: str = "You extract named entities from business documents.",
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = system_prompt
        self._prompt_template = load_prompt_template(prompt_template_path)
        schema_str = load_json_schema(json_schema_path)
        self._json_schema = schema_str
        self._json_schema_dict = json.loads(schema_str)

    def detect_entities(self, text: str) -> list[Entity]:
        if not text.strip():
            return []
        prompt = self._prompt_template.format(
            document_text=text,
            json_schema=self._json_schema,
        )
        raw_response = self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=self._json_schema_dict,
        )
        Log.debug(f"Entity provider raw response:\n{raw_response}")
        entities = validate_and_build(self._parse_json(raw_response))
        Log.info(f"Entity extraction complete: {len(entities)} entities")
        return entities

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise EntityExtractionError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise EntityExtractionError("JSON response must be an object")
        return parsed
