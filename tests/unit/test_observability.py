"""Unit tests for structured logging and Prometheus metrics."""

import json
import logging

import pytest

from progressive_schema.core.schema import ProgressiveSchemaBuilder
from progressive_schema.observability.logger import get_logger, log_operation, setup_logger
from progressive_schema.observability.metrics import (
    REGISTRY,
    generate_metrics,
    get_content_type,
)


class TestLogger:
    """Test logger setup."""

    def test_json_format(self, capsys):
        """Test JSON records carry the extra fields."""
        logger = setup_logger("test-json-format", level="INFO", format_type="json")
        logger.propagate = False

        logger.info("hello")

        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["message"] == "hello"
        assert record["level"] == "INFO"
        assert record["logger"] == "test-json-format"
        assert record["function"] == "test_json_format"
        assert "timestamp" in record

    def test_text_format(self, capsys):
        """Test the plain text formatter."""
        logger = setup_logger("test-text-format", level="DEBUG", format_type="text")
        logger.propagate = False

        logger.debug("plain")

        output = capsys.readouterr().err
        assert "test-text-format - DEBUG" in output
        assert "plain" in output

    def test_setup_replaces_handlers(self):
        """Test repeated setup keeps a single handler."""
        setup_logger("test-handlers")
        logger = setup_logger("test-handlers", level="WARNING")

        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING

    def test_get_logger_reuses_configuration(self):
        """Test get_logger returns the configured instance."""
        first = get_logger("test-reuse")

        assert get_logger("test-reuse") is first
        assert len(first.handlers) == 1


class TestLogOperation:
    """Test the log_operation context manager."""

    def test_success(self, caplog):
        """Test completion is logged with duration."""
        logger = get_logger("test-operation")

        with caplog.at_level(logging.INFO, logger="test-operation"):
            with log_operation("merge", logger=logger, batch_size=3):
                pass

        record = caplog.records[-1]
        assert record.getMessage() == "Completed: merge"
        assert record.status == "success"
        assert record.batch_size == 3
        assert record.duration_seconds >= 0

    def test_failure_reraises(self, caplog):
        """Test errors are logged and propagated."""
        logger = get_logger("test-operation")

        with caplog.at_level(logging.INFO, logger="test-operation"):
            with pytest.raises(RuntimeError):
                with log_operation("merge", logger=logger):
                    raise RuntimeError("boom")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.error_type == "RuntimeError"
        assert record.error_message == "boom"


class TestMetrics:
    """Test Prometheus collectors."""

    def test_exposition_contains_collectors(self):
        """Test all collectors are registered."""
        ProgressiveSchemaBuilder().process_batch([{"a": 1}])

        output = generate_metrics().decode("utf-8")

        for name in (
            "schema_records_processed_total",
            "schema_batches_processed_total",
            "schema_batch_size_records",
            "schema_batch_duration_seconds",
            "schema_changes_total",
            "schema_builder_version",
        ):
            assert name in output

    def test_batch_counters(self):
        """Test a batch increments record and batch counters."""
        def sample(name, labels=None):
            return REGISTRY.get_sample_value(name, labels) or 0.0

        ok_before = sample("schema_records_processed_total", {"status": "ok"})
        malformed_before = sample("schema_records_processed_total", {"status": "malformed"})
        batches_before = sample("schema_batches_processed_total")

        ProgressiveSchemaBuilder().process_batch([{"a": 1}, {"a": 2}, "not a record"])

        assert sample("schema_records_processed_total", {"status": "ok"}) - ok_before == 2
        assert sample("schema_records_processed_total", {"status": "malformed"}) - malformed_before == 1
        assert sample("schema_batches_processed_total") - batches_before == 1

    def test_content_type(self):
        """Test the exposition content type."""
        assert get_content_type().startswith("text/plain")
