from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Operation:
    """A prompt template with its retry ceiling and input cap.

    defaults fill the template's placeholders that a caller leaves out.
    """

    name: str
    label: str
    max_retries: int
    char_limit: int
    json_response: bool = False
    defaults: dict[str, Any] = field(default_factory=dict)


MAX_QUIZ_QUESTIONS = 5
MAX_HIGHLIGHT_SUGGESTIONS = 8

SUMMARIZE_PAGE = Operation(
    "summarize_page", "summary", 3, 8000, defaults={"page_label": ""}
)
SUMMARIZE_PAGE_RANGE = Operation(
    "summarize_page_range",
    "page range summary",
    3,
    10000,
    defaults={"from_page": 1, "to_page": 1},
)
EXPLAIN_TEXT = Operation(
    "explain_text", "explanation", 3, 5000, defaults={"context_line": ""}
)
GENERATE_QUIZ = Operation(
    "generate_quiz",
    "quiz",
    2,
    8000,
    json_response=True,
    defaults={"pages": "all", "question_count": MAX_QUIZ_QUESTIONS},
)
GENERATE_STUDY_TIPS = Operation(
    "generate_study_tips", "study tips", 3, 6000, defaults={"subject_label": ""}
)
ANALYZE_HIGHLIGHTS = Operation(
    "analyze_highlights",
    "highlight analysis",
    3,
    8000,
    json_response=True,
    defaults={"page_label": "", "max_suggestions": MAX_HIGHLIGHT_SUGGESTIONS},
)

OPERATIONS: dict[str, Operation] = {
    op.name: op
    for op in (
        SUMMARIZE_PAGE,
        SUMMARIZE_PAGE_RANGE,
        EXPLAIN_TEXT,
        GENERATE_QUIZ,
        GENERATE_STUDY_TIPS,
        ANALYZE_HIGHLIGHTS,
    )
}
