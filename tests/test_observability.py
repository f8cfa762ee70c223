"""Tests for observability module."""

import asyncio
import json
import logging
import time

import pytest

from bucketfs.exceptions import StorageBackendError
from bucketfs.observability import (
    LogContext,
    LogEntry,
    LogLevel,
    OperationContext,
    StructuredFormatter,
    StructuredLogger,
    Timer,
    bucket_var,
    configure_logging,
    emit_counter,
    emit_metric,
    emit_timer,
    get_logger,
    operation_var,
    register_metric_callback,
    request_id_var,
    unregister_metric_callback,
)


@pytest.fixture
def received():
    """Collect emitted metrics for the duration of a test."""
    events: list[tuple] = []

    def callback(name: str, value: float, labels: dict) -> None:
        events.append((name, value, labels))

    register_metric_callback(callback)
    yield events
    unregister_metric_callback(callback)


class TestLogContext:
    """Tests for LogContext."""

    def test_current_returns_empty_when_no_context(self) -> None:
        """Current returns empty context when no vars set."""
        context = LogContext.current()
        assert context.request_id is None
        assert context.bucket is None
        assert context.operation is None

    def test_to_dict_excludes_none_values(self) -> None:
        """to_dict excludes None values."""
        context = LogContext(request_id="req-123", bucket=None, operation="copy_file")
        result = context.to_dict()

        assert result == {"request_id": "req-123", "operation": "copy_file"}

    def test_to_dict_includes_extra(self) -> None:
        """to_dict includes extra fields."""
        context = LogContext(bucket="media", extra={"path": "a.txt"})
        result = context.to_dict()

        assert result["bucket"] == "media"
        assert result["path"] == "a.txt"


class TestLogEntry:
    """Tests for LogEntry."""

    def test_to_json_basic(self) -> None:
        """to_json produces valid JSON."""
        entry = LogEntry(
            level=LogLevel.INFO,
            message="Test message",
            timestamp="2024-01-01T00:00:00Z",
            logger="test",
        )
        result = json.loads(entry.to_json())

        assert result["level"] == "INFO"
        assert result["message"] == "Test message"
        assert result["logger"] == "test"
        assert "context" not in result

    def test_to_json_with_error_and_duration(self) -> None:
        """to_json includes error info and duration."""
        entry = LogEntry(
            level=LogLevel.WARNING,
            message="Failed to delete directory",
            timestamp="2024-01-01T00:00:00Z",
            logger="test",
            error={"type": "StorageBackendError", "message": "boom"},
            duration_ms=12.5,
        )
        result = json.loads(entry.to_json())

        assert result["error"]["type"] == "StorageBackendError"
        assert result["duration_ms"] == 12.5


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_formats_with_operation_context(self) -> None:
        """Formats log record as JSON including context variables."""
        formatter = StructuredFormatter()
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname="test.py",
            lineno=1,
            msg="Listed objects",
            args=(),
            exc_info=None,
        )
        record.context = {"prefix": "images/"}

        with OperationContext(request_id="req-1", bucket="media", operation="list"):
            parsed = json.loads(formatter.format(record))

        assert parsed["message"] == "Listed objects"
        assert parsed["context"] == {
            "request_id": "req-1",
            "bucket": "media",
            "operation": "list",
            "prefix": "images/",
        }

    def test_includes_backend_error_code(self) -> None:
        """Backend error codes appear in the error info."""
        formatter = StructuredFormatter()
        error = StorageBackendError("denied", code="AccessDenied")
        record = logging.LogRecord(
            name="test",
            level=logging.WARNING,
            pathname="test.py",
            lineno=1,
            msg="Failed to delete file",
            args=(),
            exc_info=(type(error), error, None),
        )

        parsed = json.loads(formatter.format(record))

        assert parsed["error"]["type"] == "StorageBackendError"
        assert parsed["error"]["code"] == "AccessDenied"


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_warning_with_error(self, caplog: pytest.LogCaptureFixture) -> None:
        """Warning attaches exception info."""
        logger = StructuredLogger("test.warning", LogLevel.DEBUG)

        with caplog.at_level(logging.WARNING, logger="test.warning"):
            logger.warning("Delete failed", context={"path": "a"}, error=ValueError("x"))

        assert len(caplog.records) == 1
        assert caplog.records[0].levelname == "WARNING"
        assert caplog.records[0].exc_info[0] is ValueError
        assert caplog.records[0].context == {"path": "a"}

    def test_debug_with_duration(self, caplog: pytest.LogCaptureFixture) -> None:
        """Debug carries duration."""
        logger = StructuredLogger("test.debug", LogLevel.DEBUG)

        with caplog.at_level(logging.DEBUG, logger="test.debug"):
            logger.debug("Listed", duration_ms=3.0)

        assert caplog.records[0].duration_ms == 3.0


class TestOperationContext:
    """Tests for OperationContext."""

    def test_sets_and_resets_context_vars(self) -> None:
        """Sets context variables within context and resets after."""
        with OperationContext(request_id="req-123", bucket="media", operation="copy_file"):
            assert request_id_var.get() == "req-123"
            assert bucket_var.get() == "media"
            assert operation_var.get() == "copy_file"

        assert request_id_var.get() is None
        assert bucket_var.get() is None

    def test_nested_contexts_share_request_id(self) -> None:
        """An inner context inherits the outer request ID."""
        with OperationContext(operation="move_file") as outer:
            with OperationContext(operation="copy_file") as inner:
                assert inner.request_id == outer.request_id
                assert operation_var.get() == "copy_file"
            assert operation_var.get() == "move_file"

    @pytest.mark.asyncio
    async def test_works_as_async_context_manager(self) -> None:
        """Works as async context manager."""
        async with OperationContext(request_id="async-req") as ctx:
            assert ctx.request_id == "async-req"
            assert request_id_var.get() == "async-req"


class TestTimer:
    """Tests for Timer."""

    def test_measures_duration(self) -> None:
        """Measures elapsed time."""
        with Timer() as timer:
            time.sleep(0.05)

        assert timer.duration_ms >= 40  # Allow some variance

    @pytest.mark.asyncio
    async def test_works_as_async_context_manager(self) -> None:
        """Works as async context manager."""
        async with Timer() as timer:
            await asyncio.sleep(0.05)

        assert timer.duration_ms >= 40

    def test_emits_metric_when_named(self, received) -> None:
        """A named timer reports its duration on exit."""
        with Timer("bucketfs.list.duration_ms") as timer:
            pass

        name, value, _ = received[-1]
        assert name == "bucketfs.list.duration_ms"
        assert value == timer.duration_ms


class TestMetrics:
    """Tests for metric functions."""

    def test_emit_metric_adds_context_labels(self, received) -> None:
        """Metrics pick up bucket and operation from the context."""
        with OperationContext(bucket="media", operation="try_delete_directory"):
            emit_metric("test.metric", 42.5, {"key": "value"})

        name, value, labels = received[-1]
        assert name == "test.metric"
        assert value == 42.5
        assert labels == {
            "key": "value",
            "bucket": "media",
            "operation": "try_delete_directory",
        }

    def test_emit_counter(self, received) -> None:
        """Emit counter increments by 1."""
        emit_counter("test.counter")

        name, value, _ = received[-1]
        assert name == "test.counter"
        assert value == 1.0

    def test_emit_timer(self, received) -> None:
        """Emit timer with duration."""
        emit_timer("test.timer", 123.45)

        name, value, _ = received[-1]
        assert name == "test.timer"
        assert value == 123.45

    def test_failing_callback_does_not_raise(self, received) -> None:
        """A broken metric sink does not break the caller."""

        def broken(name: str, value: float, labels: dict) -> None:
            raise RuntimeError("sink down")

        register_metric_callback(broken)
        try:
            emit_counter("test.counter")
        finally:
            unregister_metric_callback(broken)

        assert received[-1][0] == "test.counter"



class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_configures_package_logger(self) -> None:
        """Configures the package logger."""
        configure_logging(level=LogLevel.DEBUG, format="json")

        root = logging.getLogger("bucketfs")
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_accepts_level_name(self) -> None:
        """Accepts level names from configuration."""
        configure_logging(level="warning", format="text")

        root = logging.getLogger("bucketfs")
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_get_logger_returns_structured_logger(self) -> None:
        """get_logger returns StructuredLogger."""
        logger = get_logger("test.module")
        assert isinstance(logger, StructuredLogger)
