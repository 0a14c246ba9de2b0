"""Builds Entity objects from a provider's parsed JSON answer."""

from typing import Any

from docpipe.documents.models import Entity
from docpipe.entities.exceptions import EntityExtractionValidationError

_MAX_ENTITIES = 500


def validate_and_build(data: dict[str, Any]) -> list[Entity]:
    """Validate ``{"entities": [{text, type, confidenceScore}]}`` and build entities.

    Raises:
        EntityExtractionValidationError: on any validation failure.
    """
    raw = data.get("entities")
    if not isinstance(raw, list):
        raise EntityExtractionValidationError("'entities' must be a list")
    if len(raw) > _MAX_ENTITIES:
        raise EntityExtractionValidationError(
            f"Too many entities: {len(raw)} (max {_MAX_ENTITIES})"
        )
    return [_build_entity(item, i) for i, item in enumerate(raw)]


def _build_entity(raw: Any, index: int) -> Entity:
    if not isinstance(raw, dict):
        raise EntityExtractionValidationError(f"entities[{index}] must be an object")
    text = raw.get("text")
    if not isinstance(text, str) or not text.strip():
        raise EntityExtractionValidationError(f"entities[{index}].text must be a non-empty string")
    entity_type = raw.get("type")
    if not isinstance(entity_type, str) or not entity_type.strip():
        raise EntityExtractionValidationError(f"entities[{index}].type must be a non-empty string")
    score = raw.get("confidenceScore")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise EntityExtractionValidationError(
            f"entities[{index}].confidenceScore must be a number"
        )
    if not 0.0 <= score <= 1.0:
        raise EntityExtractionValidationError(
            f"entities[{index}].confidenceScore must be between 0 and 1"
        )
    return Entity(text=text, type=entity_type.strip().upper(), confidence=float(score))
