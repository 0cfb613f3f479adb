"""Tests for structured logging."""

import json
import logging
import sys

from echostats.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CorrelationIdFilter,
    CustomJsonFormatter,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)


def _record(msg: str = "hello", exc_info: object = None) -> logging.LogRecord:
    return logging.LogRecord(
        name="echostats.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,  # type: ignore[arg-type]
    )


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self):
        """Test setting and getting correlation ID."""
        test_id = "test-123-abc"
        result = set_correlation_id(test_id)
        assert result == test_id
        assert get_correlation_id() == test_id

    def test_set_correlation_id_generates_uuid_when_none(self):
        """Test that setting None generates a UUID."""
        result = set_correlation_id(None)
        assert len(result) == 36
        assert get_correlation_id() == result

    def test_filter_adds_correlation_id_to_record(self):
        set_correlation_id("filter-id")
        record = _record()

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "filter-id"


class TestFormatters:
    """Test the JSON and compact formatters."""

    def test_json_formatter_fields(self):
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = _record("stats fetched")
        record.correlation_id = "corr-1"

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "stats fetched"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "echostats.test"
        assert payload["correlation_id"] == "corr-1"
        assert payload["line"] == 10

    def test_compact_formatter_shows_exception_chain(self):
        formatter = CompactExceptionFormatter(fmt="%(message)s")
        try:
            try:
                raise ConnectionError("socket closed")
            except ConnectionError as e:
                raise RuntimeError("Spotify request failed") from e
        except RuntimeError:
            record = _record("failed", exc_info=sys.exc_info())

        output = formatter.format(record)

        lines = output.splitlines()
        assert lines[0] == "failed"
        assert "╰─► ConnectionError: socket closed" in output
        assert "╰─► RuntimeError: Spotify request failed" in output
        # Root cause first
        assert output.index("ConnectionError") < output.index("RuntimeError")


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_debug_level(self):
        """Test configuring logging with DEBUG level."""
        configure_logging(log_level="DEBUG", json_format=False, app_name="test-app")
        logger = logging.getLogger("test")
        assert logger.getEffectiveLevel() <= logging.DEBUG

    def test_configure_logging_info_level(self):
        """Test configuring logging with INFO level."""
        configure_logging(log_level="INFO", json_format=False, app_name="test-app")
        logger = logging.getLogger("test")
        assert logger.getEffectiveLevel() == logging.INFO

    def test_configure_logging_json_format(self):
        """Test configuring logging with JSON format."""
        configure_logging(log_level="INFO", json_format=True, app_name="test-app")
        root_logger = logging.getLogger()
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, CustomJsonFormatter)

    def test_configure_logging_text_format(self):
        """Test configuring logging with text format."""
        configure_logging(log_level="INFO", json_format=False, app_name="test-app")
        root_logger = logging.getLogger()
        assert isinstance(root_logger.handlers[0].formatter, CompactExceptionFormatter)

    def test_http_client_loggers_are_quieted(self):
        configure_logging(log_level="DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(log_level="LOUD")

        assert logging.getLogger().level == logging.INFO
