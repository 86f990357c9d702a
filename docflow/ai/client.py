"""Generative AI client with backoff, model fallback and user-facing errors."""

import json
import threading
import time
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Any, TypeVar

from docflow.ai.client_base import BaseGenerativeClientAdapter
from docflow.ai.exceptions import AIServiceError, ModelUnavailableError, ServiceCallError
from docflow.ai.models import AIResult
from docflow.ai.operations import (
    ANALYZE_HIGHLIGHTS,
    EXPLAIN_TEXT,
    GENERATE_QUIZ,
    GENERATE_STUDY_TIPS,
    MAX_HIGHLIGHT_SUGGESTIONS,
    MAX_QUIZ_QUESTIONS,
    OPERATIONS,
    SUMMARIZE_PAGE,
    SUMMARIZE_PAGE_RANGE,
    Operation,
)
from docflow.ai.prompt_loader import load_prompt_template
from docflow.logging.logger import Log
from docflow.retry.backoff import (
    ErrorKind,
    classify_status,
    decide,
    overloaded_delay,
    rate_limited_delay,
)

T = TypeVar("T")

TRUNCATION_NOTE = " ...(truncated)"
HEALTH_CHECK_PROMPT = "Hello"
HIGHLIGHT_FIELDS = ("text", "reason", "importance", "category")


class GenerativeClient:
    """Calls a generative model through a provider adapter.

    Overload and rate-limit responses are retried with backoff on the same
    model. A model reported as unavailable is replaced by the next configured
    model without using up a retry; the switch sticks for later calls.
    """

    def __init__(
        self,
        *,
        client: BaseGenerativeClientAdapter,
        models: list[str],
        temperature: float = 0.3,
        sleep: Callable[[float], None] = time.sleep,
        prompt_dir: Path | None = None,
    ) -> None:
        if not models:
            raise ValueError("At least one model name is required")
        self._client = client
        self._models = list(models)
        self._temperature = temperature
        self._sleep = sleep
        self._prompt_dir = prompt_dir
        self._templates: dict[str, str] = {}
        self._lock = threading.Lock()
        self._current_model_index = 0

    @property
    def current_model_index(self) -> int:
        return self._current_model_index

    @property
    def current_model(self) -> str:
        return self._models[self._current_model_index]

    def retry_with_backoff(self, fn: Callable[[str], T], max_retries: int = 3) -> T:
        """Call fn(model) until it succeeds or the failure is not worth retrying.

        Raises:
            ModelUnavailableError: when the last configured model is unavailable.
            ServiceCallError: the last failure once retries are exhausted, or
                immediately for errors that are not retryable.
        """
        attempt = 1
        while True:
            model = self.current_model
            try:
                return fn(model)
            except ServiceCallError as exc:
                kind = classify_status(exc.status_code)
                Log.warning(f"Attempt {attempt} on {model} failed ({kind.value}): {exc}")
                decision = decide(kind, attempt, max_retries)
                if decision.switch_model:
                    if not self._advance_model(model):
                        raise ModelUnavailableError(
                            f"No fallback model left after {model}: {exc}"
                        ) from exc
                    continue
                if not decision.retry:
                    raise
                Log.info(
                    f"Waiting {decision.delay_seconds:g}s before retry "
                    f"{attempt + 1}/{max_retries}"
                )
                self._sleep(decision.delay_seconds)
                attempt += 1

    def call(self, operation: str, text: str, **fields: Any) -> AIResult:
        """Render the operation's prompt for text and call the model.

        Template fields the caller leaves out take the operation's defaults.

        Raises:
            ValueError: on an unknown operation name or a template field with no value.
            AIServiceError: when the provider call ultimately fails.
        """
        op = OPERATIONS.get(operation)
        if op is None:
            raise ValueError(
                f"Unknown AI operation '{operation}'. Choose from: {sorted(OPERATIONS)}"
            )
        truncated = len(text) > op.char_limit
        try:
            prompt = self._template(op.name).format(
                **{
                    **op.defaults,
                    **fields,
                    "text": text[: op.char_limit],
                    "truncation_note": TRUNCATION_NOTE if truncated else "",
                }
            )
        except KeyError as exc:
            raise ValueError(f"Prompt {op.name} needs a value for {exc}") from exc

        def generate(model: str) -> tuple[str, str]:
            response = self._client.generate(
                model=model,
                prompt=prompt,
                temperature=self._temperature,
                json_response=op.json_response,
            )
            return response, model

        try:
            response, model = self.retry_with_backoff(generate, op.max_retries)
        except ServiceCallError as exc:
            raise self._to_service_error(exc, op) from exc

        if not op.json_response:
            return AIResult(operation=op.name, model=model, text=response, truncated=truncated)
        data = self._parse_json(response)
        if data is None:
            Log.warning(f"{op.name}: response is not a JSON object, returning raw text")
            return AIResult(
                operation=op.name,
                model=model,
                text=response,
                parsed=False,
                truncated=truncated,
                raw_text=response,
            )
        return AIResult(
            operation=op.name, model=model, text=response, data=data, truncated=truncated
        )

    def summarize_page(self, text: str, page_number: int | None = None) -> AIResult:
        return self.call(SUMMARIZE_PAGE.name, text, page_label=_page_label(page_number))

    def summarize_page_range(
        self, texts: list[str], from_page: int, to_page: int
    ) -> AIResult:
        return self.call(
            SUMMARIZE_PAGE_RANGE.name,
            "\n\n".join(texts),
            from_page=from_page,
            to_page=to_page,
        )

    def explain_text(self, text: str, context: str = "") -> AIResult:
        context_line = f'Context: "{context}"\n' if context else ""
        return self.call(EXPLAIN_TEXT.name, text, context_line=context_line)

    def generate_quiz(self, text: str, pages: str, question_count: int = 5) -> AIResult:
        count = max(1, min(question_count, MAX_QUIZ_QUESTIONS))
        return self.call(GENERATE_QUIZ.name, text, pages=pages, question_count=count)

    def generate_study_tips(self, text: str, subject: str = "") -> AIResult:
        subject_label = f" about {subject}" if subject else ""
        return self.call(GENERATE_STUDY_TIPS.name, text, subject_label=subject_label)

    def analyze_highlights(self, text: str, page_number: int | None = None) -> AIResult:
        """Suggest passages to highlight. Only passages found verbatim in text are kept."""
        result = self.call(
            ANALYZE_HIGHLIGHTS.name,
            text,
            page_label=_page_label(page_number),
            max_suggestions=MAX_HIGHLIGHT_SUGGESTIONS,
        )
        suggestions = (result.data or {}).get("suggestions")
        if not result.parsed or not isinstance(suggestions, list):
            return replace(
                result,
                data={"suggestions": []},
                parsed=False,
                raw_text=result.text,
            )
        valid = [
            suggestion
            for suggestion in suggestions
            if isinstance(suggestion, dict)
            and all(suggestion.get(name) for name in HIGHLIGHT_FIELDS)
            and str(suggestion["text"]).strip() in text
        ]
        return replace(
            result,
            data={
                **(result.data or {}),
                "suggestions": valid[: MAX_HIGHLIGHT_SUGGESTIONS],
            },
        )

    def check_health(self) -> bool:
        """Send a trivial prompt to the current model, without retries."""
        try:
            self._client.generate(
                model=self.current_model,
                prompt=HEALTH_CHECK_PROMPT,
                temperature=self._temperature,
            )
        except ServiceCallError as exc:
            Log.warning(f"AI service health check failed: {exc}")
            return False
        Log.info("AI service is healthy")
        return True

    def _advance_model(self, failed_model: str) -> bool:
        with self._lock:
            if self.current_model != failed_model:
                # Another call already moved on.
                return True
            if self._current_model_index >= len(self._models) - 1:
                return False
            self._current_model_index += 1
            Log.warning(f"Switching to model: {self.current_model}")
            return True

    def _template(self, name: str) -> str:
        if name not in self._templates:
            self._templates[name] = load_prompt_template(name, self._prompt_dir)
        return self._templates[name]

    @staticmethod
    def _to_service_error(exc: ServiceCallError, op: Operation) -> AIServiceError:
        if isinstance(exc, ModelUnavailableError):
            kind = ErrorKind.MODEL_UNAVAILABLE
        else:
            kind = classify_status(exc.status_code)
        Log.error(f"AI {op.name} failed ({kind.value}): {exc}")
        if kind is ErrorKind.OVERLOADED:
            return AIServiceError(
                kind,
                "The AI service is temporarily overloaded. Please try again in a few moments.",
                retryable=True,
                retry_after_seconds=overloaded_delay(op.max_retries),
            )
        if kind is ErrorKind.RATE_LIMITED:
            return AIServiceError(
                kind,
                "Too many requests. Please wait a moment before trying again.",
                retryable=True,
                retry_after_seconds=rate_limited_delay(op.max_retries),
            )
        if kind is ErrorKind.MODEL_UNAVAILABLE:
            return AIServiceError(kind, "AI model not available. Please try again later.")
        if exc.status_code == 400:
            return AIServiceError(kind, "Invalid request. Please check your input and try again.")
        return AIServiceError(kind, f"Failed to generate {op.label}. Please try again.")

    @staticmethod
    def _parse_json(raw: str) -> dict[str, Any] | None:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError:
            return None
        return parsed if isinstance(parsed, dict) else None


def _page_label(page_number: int | None) -> str:
    return f" (Page {page_number})" if page_number else ""
