"""Error classification and retry delays shared by the job queue and the AI client."""

from dataclasses import dataclass
from enum import Enum

OVERLOADED_STATUS_CODES = frozenset({502, 503, 529})
RATE_LIMITED_STATUS_CODES = frozenset({429})
MODEL_UNAVAILABLE_STATUS_CODES = frozenset({404})


class ErrorKind(str, Enum):
    OVERLOADED = "overloaded"
    RATE_LIMITED = "rate_limited"
    MODEL_UNAVAILABLE = "model_unavailable"
    TRANSIENT = "transient"
    PERMANENT = "permanent"


@dataclass(frozen=True)
class RetryDecision:
    """What to do after a failed attempt."""

    retry: bool
    delay_seconds: float = 0.0
    switch_model: bool = False


def classify_status(status_code: int | None) -> ErrorKind:
    """Map a remote status code onto an error kind. Unknown codes are permanent."""
    if status_code in OVERLOADED_STATUS_CODES:
        return ErrorKind.OVERLOADED
    if status_code in RATE_LIMITED_STATUS_CODES:
        return ErrorKind.RATE_LIMITED
    if status_code in MODEL_UNAVAILABLE_STATUS_CODES:
        return ErrorKind.MODEL_UNAVAILABLE
    return ErrorKind.PERMANENT


def overloaded_delay(attempt: int) -> float:
    """2^attempt seconds."""
    return float(2**attempt)


def rate_limited_delay(attempt: int) -> float:
    """3^attempt seconds, a longer curve than overload."""
    return float(3**attempt)


def exponential_delay(attempt: int, base_seconds: float) -> float:
    """base, 2*base, 4*base, ... for attempt 1, 2, 3, ..."""
    return base_seconds * 2 ** max(0, attempt - 1)


def decide(
    kind: ErrorKind,
    attempt: int,
    max_attempts: int,
    *,
    base_seconds: float = 2.0,
) -> RetryDecision:
    """Decide whether attempt number `attempt` (1-based) should be followed by another.

    Model unavailability never waits and never counts against `max_attempts`;
    the caller is responsible for bounding it by the number of models it has.
    """
    if kind is ErrorKind.PERMANENT:
        return RetryDecision(retry=False)
    if kind is ErrorKind.MODEL_UNAVAILABLE:
        return RetryDecision(retry=True, switch_model=True)
    if attempt >= max_attempts:
        return RetryDecision(retry=False)
    if kind is ErrorKind.OVERLOADED:
        return RetryDecision(retry=True, delay_seconds=overloaded_delay(attempt))
    if kind is ErrorKind.RATE_LIMITED:
        return RetryDecision(retry=True, delay_seconds=rate_limited_delay(attempt))
    return RetryDecision(retry=True, delay_seconds=exponential_delay(attempt, base_seconds))
