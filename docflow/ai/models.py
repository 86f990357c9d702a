from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class AIResult:
    """Response of one generative operation.

    For JSON operations `data` holds the parsed object. When the provider
    answer could not be parsed, `parsed` is False and `raw_text` keeps it.
    """

    operation: str
    model: str
    text: str
    data: dict[str, Any] | None = None
    parsed: bool = True
    truncated: bool = False
    raw_text: str | None = None
