from pathlib import Path

from docpipe.entities.exceptions import EntityExtractionError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(path: Path | None = None) -> str:
    """Load the entity prompt template.

    Args:
        path: Path to the prompt template file.
              Defaults to the bundled entity_prompt.txt.

    Raises:
        EntityExtractionError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "entity_prompt.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise EntityExtractionError(f"Failed to load prompt template: {exc}") from exc


def load_json_schema(path: Path | None = None) -> str:
    """Load the JSON schema the provider must answer with.

    Raises:
        EntityExtractionError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "entity_schema.json"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise EntityExtractionError(f"Failed to load JSON schema: {exc}") from exc
