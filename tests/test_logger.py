"""Tests for the structured JSON log formatter."""
import sys
import json
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from unittest.mock import patch
from logger import JSONFormatter, setup_logging, configure_from_settings


def make_record(message="Indexed files", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="services.indexer",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """JSON log line layout."""

    def test_basic_fields(self):
        """Test the basic JSON fields."""
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "services.indexer"
        assert data["message"] == "Indexed files"
        assert data["timestamp"].endswith("Z")
        assert "exception" not in data

    def test_structured_extra_fields(self):
        """Test that whitelisted extra fields are included."""
        record = make_record(batch_start=0, batch_end=100, file_path="src/a.ts", unrelated="dropped")

        data = json.loads(JSONFormatter().format(record))

        assert data["batch_start"] == 0
        assert data["batch_end"] == 100
        assert data["file_path"] == "src/a.ts"
        assert "unrelated" not in data

    def test_exception_is_included(self):
        """Test that exception info is included."""
        try:
            raise RuntimeError("provider down")
        except RuntimeError:
            record = make_record("Embedding failed", level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: provider down" in data["exception"]

    def test_non_serializable_values_are_stringified(self):
        """Test that non-serializable values are stringified."""
        record = make_record(error_details={"path": Path("src/a.ts")})

        data = json.loads(JSONFormatter().format(record))

        assert data["error_details"] == {"path": "src/a.ts"}


class TestSetupLogging:
    """Root logger configuration."""

    def test_setup_logging_replaces_handlers(self):
        """Test that setup_logging replaces root handlers."""
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging("WARNING")

            assert root.level == logging.WARNING
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)

    def test_configure_from_settings_text_format(self):
        """Test the text log format setting."""
        with patch("config.LOG_FORMAT", "text"), patch("logger.setup_logging") as mock_setup:
            configure_from_settings()
        mock_setup.assert_not_called()

    def test_configure_from_settings_json_format(self):
        """Test the JSON log format setting."""
        with patch("config.LOG_FORMAT", "JSON"), patch("config.LOG_LEVEL", "DEBUG"), \
                patch("logger.setup_logging") as mock_setup:
            configure_from_settings()
        mock_setup.assert_called_once_with("DEBUG")
