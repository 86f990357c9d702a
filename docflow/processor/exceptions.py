class ProcessorError(Exception):
    """Base exception for all processor-related errors.

    `retryable` tells the queue whether another attempt could succeed.
    """

    retryable: bool = True


class DocumentValidationError(ProcessorError):
    """Raised when a document fails validation. Never retried."""

    retryable = False


class DocumentNotFoundError(DocumentValidationError):
    """Raised when a document record or its stored file cannot be found."""


class FileTooLargeError(DocumentValidationError):
    """Raised when a stored file exceeds the size ceiling."""


class UnsupportedMimeTypeError(DocumentValidationError):
    """Raised when a document's declared content type is not supported."""


class ExtractionTimeoutError(ProcessorError):
    """Raised when extraction does not finish within its time budget."""


class ExtractionFailedError(ProcessorError):
    """Raised when the PDF engine fails on a readable file."""


class FileReadError(ProcessorError):
    """Raised when a file cannot be read from storage."""
