import logging
import sys
from typing import Any

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(message)s"


class _FieldsFormatter(logging.Formatter):
    """Appends key=value pairs passed as keyword arguments to Log calls."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields: dict[str, Any] = getattr(record, "fields", {})
        if not fields:
            return line
        suffix = " ".join(f"{key}={value}" for key, value in fields.items())
        return f"{line} | {suffix}"


class Log:
    """Process-wide logger for the pipeline.

    Keyword arguments become trailing key=value fields, e.g.
    ``Log.info("Job claimed", job_id=job.id)``.
    """

    _logger: logging.Logger = logging.getLogger("docflow")

    @classmethod
    def configure(cls, log_level: str, app_env: str | None = None) -> None:
        """Set the level and attach a single stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(_FieldsFormatter(LOG_FORMAT))
            cls._logger.addHandler(handler)
        if app_env is not None:
            cls._logger.debug(f"Logging configured for {app_env} at {log_level.upper()}")

    @classmethod
    def info(cls, message: str, **fields: object) -> None:
        cls._logger.info(message, extra={"fields": fields})

    @classmethod
    def error(cls, message: str, **fields: object) -> None:
        cls._logger.error(message, extra={"fields": fields})

    @classmethod
    def exception(cls, message: str, **fields: object) -> None:
        """Log at error level with the active exception's traceback."""
        cls._logger.exception(message, extra={"fields": fields})

    @classmethod
    def warning(cls, message: str, **fields: object) -> None:
        cls._logger.warning(message, extra={"fields": fields})

    @classmethod
    def debug(cls, message: str, **fields: object) -> None:
        cls._logger.debug(message, extra={"fields": fields})
