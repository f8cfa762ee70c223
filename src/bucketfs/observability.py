"""Structured logging and metrics for file store operations.

Log lines and metrics emitted while an ``OperationContext`` is active carry
that context's request ID, bucket and operation name. Nested contexts
inherit the request ID so one logical call (a move is a copy plus a delete)
can be followed across its backend round-trips.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
bucket_var: ContextVar[str | None] = ContextVar("bucket", default=None)
operation_var: ContextVar[str | None] = ContextVar("operation", default=None)

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LogLevel(str, Enum):
    """Log levels matching Python's logging module."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def levelno(self) -> int:
        return getattr(logging, self.value)


@dataclass
class LogContext:
    """Operation data attached to every log entry and metric."""

    request_id: str | None = None
    bucket: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def current(cls) -> "LogContext":
        """Snapshot the active context variables."""
        return cls(
            request_id=request_id_var.get(),
            bucket=bucket_var.get(),
            operation=operation_var.get(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary, leaving out unset fields."""
        result = {
            name: value
            for name, value in (
                ("request_id", self.request_id),
                ("bucket", self.bucket),
                ("operation", self.operation),
            )
            if value
        }
        result.update(self.extra)
        return result


@dataclass
class LogEntry:
    """A structured log entry."""

    level: LogLevel
    message: str
    timestamp: str
    logger: str
    context: dict[str, Any] = field(default_factory=dict)
    error: dict[str, Any] | None = None
    duration_ms: float | None = None

    def to_json(self) -> str:
        """Serialize to a JSON line. Empty optional fields are omitted."""
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "logger": self.logger,
            "message": self.message,
        }
        optional = {"context": self.context, "error": self.error, "duration_ms": self.duration_ms}
        data.update({key: value for key, value in optional.items() if value not in (None, {})})
        # Keys and datetimes from backend responses are not always JSON types
        return json.dumps(data, default=str)


def _error_info(record: logging.LogRecord) -> dict[str, Any] | None:
    if not record.exc_info:
        return None
    exc_type, exc_value, _ = record.exc_info
    info: dict[str, Any] = {
        "type": exc_type.__name__ if exc_type else "Unknown",
        "message": str(exc_value) if exc_value else "",
    }
    # Backend failures carry the storage service's own error code
    code = getattr(exc_value, "code", None)
    if code:
        info["code"] = code
    return info


class StructuredFormatter(logging.Formatter):
    """Formats log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        context = LogContext.current().to_dict()
        extra_context = getattr(record, "context", None)
        if isinstance(extra_context, dict):
            context.update(extra_context)

        entry = LogEntry(
            level=LogLevel(record.levelname),
            message=record.getMessage(),
            timestamp=datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            logger=record.name,
            context=context,
            error=_error_info(record),
            duration_ms=getattr(record, "duration_ms", None),
        )
        return entry.to_json()


class StructuredLogger:
    """Logger taking a context dictionary, an exception and a duration.

    Handlers are not attached here; ``configure_logging`` sets them up once
    on the package logger and every module logger propagates to it.

    Example:
        logger = StructuredLogger("bucketfs.store")
        logger.info("Directory deleted", context={"path": "images"})
        logger.warning("Delete failed", context={"path": "a.txt"}, error=exc)
    """

    def __init__(self, name: str, level: LogLevel | None = None) -> None:
        """Initialize structured logger.

        Args:
            name: Logger name (typically module name)
            level: Minimum log level; inherited from the parent logger if None
        """
        self.logger = logging.getLogger(name)
        if level is not None:
            self.logger.setLevel(level.levelno)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        error: BaseException | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log ``message`` at ``level`` with optional structured fields."""
        if not self.logger.isEnabledFor(level.levelno):
            return

        extra: dict[str, Any] = {}
        if context:
            extra["context"] = context
        if duration_ms is not None:
            extra["duration_ms"] = duration_ms
        self.logger.log(level.levelno, message, exc_info=error, extra=extra)

    def debug(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        self.log(LogLevel.DEBUG, message, context=context, duration_ms=duration_ms)

    def info(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        self.log(LogLevel.INFO, message, context=context, duration_ms=duration_ms)

    def warning(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        error: BaseException | None = None,
        duration_ms: float | None = None,
    ) -> None:
        self.log(LogLevel.WARNING, message, context=context, error=error, duration_ms=duration_ms)

    def error(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        error: BaseException | None = None,
        duration_ms: float | None = None,
    ) -> None:
        self.log(LogLevel.ERROR, message, context=context, error=error, duration_ms=duration_ms)


class OperationContext:
    """Scope logs and metrics to one file store operation.

    Example:
        async with OperationContext(bucket="media", operation="try_delete_directory"):
            logger.info("Deleting page")  # carries bucket and operation
    """

    def __init__(
        self,
        request_id: str | None = None,
        bucket: str | None = None,
        operation: str | None = None,
    ) -> None:
        """Initialize operation context.

        Args:
            request_id: Correlation ID; inherited from an enclosing context or
                generated if None
            bucket: Bucket the operation targets
            operation: File store operation name
        """
        self.request_id = request_id or request_id_var.get() or str(uuid.uuid4())
        self.bucket = bucket
        self.operation = operation
        self._tokens: list[tuple[ContextVar, Any]] = []

    def __enter__(self) -> "OperationContext":
        values = (
            (request_id_var, self.request_id),
            (bucket_var, self.bucket),
            (operation_var, self.operation),
        )
        self._tokens = [(var, var.set(value)) for var, value in values if value]
        return self

    def __exit__(self, *args: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)

    async def __aenter__(self) -> "OperationContext":
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


class Timer:
    """Measure a block and optionally report it as a timer metric.

    Example:
        async with Timer("bucketfs.list.duration_ms") as t:
            page = await backend.list_objects_v2(bucket, prefix)
        logger.debug("Listed", duration_ms=t.duration_ms)
    """

    def __init__(self, metric: str | None = None, labels: dict[str, Any] | None = None) -> None:
        """Initialize timer.

        Args:
            metric: Timer metric emitted on exit; nothing is emitted if None
            labels: Extra labels for the metric
        """
        self.metric = metric
        self.labels = labels
        self.start_time: float = 0
        self.end_time: float = 0

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.end_time = time.perf_counter()
        if self.metric:
            emit_timer(self.metric, self.duration_ms, self.labels)

    async def __aenter__(self) -> "Timer":
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


# Metric sink signature: (name, value, labels)
MetricCallback = Callable[[str, float, dict[str, Any]], None]

_metric_callbacks: list[MetricCallback] = []


def register_metric_callback(callback: MetricCallback) -> None:
    """Register a callback to receive metric events."""
    _metric_callbacks.append(callback)


def unregister_metric_callback(callback: MetricCallback) -> None:
    """Remove a previously registered metric callback."""
    if callback in _metric_callbacks:
        _metric_callbacks.remove(callback)


def emit_metric(name: str, value: float, labels: dict[str, Any] | None = None) -> None:
    """Send a metric to every registered callback.

    The active bucket and operation are added as labels unless ``labels``
    already sets them.

    Args:
        name: Metric name
        value: Metric value
        labels: Optional labels/dimensions
    """
    context = LogContext.current()
    merged: dict[str, Any] = {}
    if context.bucket:
        merged["bucket"] = context.bucket
    if context.operation:
        merged["operation"] = context.operation
    merged.update(labels or {})

    for callback in _metric_callbacks:
        try:
            callback(name, value, dict(merged))
        except Exception:
            logging.getLogger(__name__).debug("Metric callback failed", exc_info=True)


def emit_counter(name: str, labels: dict[str, Any] | None = None) -> None:
    """Emit a counter metric (increment by 1)."""
    emit_metric(name, 1.0, labels)


def emit_timer(name: str, duration_ms: float, labels: dict[str, Any] | None = None) -> None:
    """Emit a timer metric."""
    emit_metric(name, duration_ms, labels)


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    format: str = "json",
) -> None:
    """Attach a stdout handler to the ``bucketfs`` logger.

    Calling it again replaces the previous handler.

    Args:
        level: Minimum log level (enum member or name, any case)
        format: Output format ("json" or "text")
    """
    level = LogLevel(getattr(level, "value", level).upper())

    package_logger = logging.getLogger("bucketfs")
    package_logger.setLevel(level.levelno)
    package_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if format == "json" else logging.Formatter(TEXT_FORMAT))
    package_logger.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module (typically ``__name__``)."""
    return StructuredLogger(name)
