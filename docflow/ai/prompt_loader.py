from pathlib import Path

from docflow.ai.exceptions import AIServiceError
from docflow.retry.backoff import ErrorKind

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(name: str, prompt_dir: Path | None = None) -> str:
    """Load a prompt template by operation name.

    Args:
        name: Template name without extension, e.g. "summarize_page".
        prompt_dir: Directory holding the templates.
                    Defaults to the bundled prompts directory.

    Returns:
        The raw template string with placeholders.

    Raises:
        AIServiceError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / f"{name}.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise AIServiceError(
            ErrorKind.PERMANENT,
            f"Failed to load prompt template '{name}': {exc}",
        ) from exc
