"""Structured logging configuration for the codebase RAG assistant."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

# Keys callers attach through ``extra=`` that are worth keeping in JSON output
STRUCTURED_FIELDS = (
    "file_path",
    "batch_start",
    "batch_end",
    "chunk_count",
    "file_count",
    "top_k",
    "file_type",
    "error_code",
    "error_details",
)


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO") -> None:
    """Set up structured JSON logging, replacing any existing root handlers."""
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.setLevel(getattr(logging, log_level))
    root_logger.addHandler(handler)


def configure_from_settings() -> None:
    """Switch to JSON logs when LOG_FORMAT=json; basicConfig text logs otherwise."""
    from config import LOG_FORMAT, LOG_LEVEL

    if LOG_FORMAT.lower() == "json":
        setup_logging(LOG_LEVEL)
