from docflow.retry.backoff import ErrorKind


class ServiceCallError(Exception):
    """Raised by a provider adapter when a remote call fails.

    status_code is the HTTP status returned by the provider, or None when the
    request never got a response (connection error, timeout).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ModelUnavailableError(ServiceCallError):
    """Raised when every configured model reported itself unavailable."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


class AIServiceError(Exception):
    """Error surfaced to callers of the generative client.

    Carries a user-facing message and whether trying again later can help.
    """

    def __init__(
        self,
        kind: ErrorKind,
        user_message: str,
        *,
        retryable: bool = False,
        retry_after_seconds: float | None = None,
    ) -> None:
        super().__init__(user_message)
        self.kind = kind
        self.user_message = user_message
        self.retryable = retryable
        self.retry_after_seconds = retry_after_seconds
