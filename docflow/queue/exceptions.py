class QueueError(Exception):
    """Base exception for job queue errors."""


class InvalidArgumentError(QueueError, ValueError):
    """Raised when a job is requested with an empty document id or unknown option."""


class JobNotFoundError(QueueError):
    """Raised when a job handle is unknown to the queue."""


class PermanentFailureError(QueueError):
    """A job failed for good: attempts exhausted or the failure is not retryable."""

    def __init__(self, job_id: str, message: str) -> None:
        super().__init__(f"Job {job_id} failed permanently: {message}")
        self.job_id = job_id
        self.message = message
