"""Offline chat client for local development and tests.

Implement BaseChatClient and register the provider in EntityExtractorFactory
to add a real provider.
"""

import json
import re
from typing import ClassVar

from docpipe.entities.base import BaseChatClient


class ExampleClientAdapter(BaseChatClient):
    """Returns dates and currency amounts found in the prompt's document text.

    No network calls; the answer depends only on the text between the
    document markers of the prompt.
    """

    _DOCUMENT_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"<document>\n?(.*?)\n?</document>", re.DOTALL
    )
    _RULES: ClassVar[list[tuple[str, re.Pattern[str]]]] = [
        ("DATE", re.compile(r"\b\d{4}-\d{2}-\d{2}\b|\b\d{1,2}/\d{1,2}/\d{2,4}\b")),
        ("QUANTITY", re.compile(r"[$€£]\s?\d[\d,]*(?:\.\d+)?")),
    ]

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        _ = model, temperature, system_prompt, json_schema
        match = self._DOCUMENT_RE.search(user_prompt)
        text = match.group(1) if match else ""
        entities = [
            {"text": found.group(0), "type": entity_type, "confidenceScore": 1.0}
            for entity_type, pattern in self._RULES
            for found in pattern.finditer(text)
        ]
        return json.dumps({"entities": entities})
