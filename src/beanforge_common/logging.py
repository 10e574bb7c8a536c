"""Structured logging helpers with correlation IDs.

This module provides LoggerAdapter for structured logging with mandatory
fields (correlation_id, operation, status) and module-level loggers with a
NullHandler so that importing beanforge never configures output on behalf of
the embedding application.

Examples
--------
>>> from beanforge_common.logging import get_logger
>>> logger = get_logger(__name__)
>>> logger.debug("Scanning root", extra={"operation": "scan", "root": "/srv/app"})
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, TextIO, cast

if TYPE_CHECKING:
    from collections.abc import Mapping, MutableMapping
    from types import TracebackType

    from beanforge_common.types import JsonValue

__all__ = [
    "JsonFormatter",
    "LoggerAdapter",
    "get_logger",
    "measure_duration",
    "setup_logging",
    "with_fields",
]

# Context variable for correlation ID propagation (async-safe)
_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

_STRUCTURED_FIELDS = ("correlation_id", "operation", "status", "duration_ms")

# Standard LogRecord attributes never copied into the JSON payload
_RECORD_ATTRIBUTES = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Formats log records as JSON with timestamp, level, name, message, the
    structured fields, and any JSON-compatible ``extra`` values. The
    correlation ID falls back to the context variable when the record does
    not carry one.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format.

        Returns
        -------
        str
            JSON-encoded log entry.
        """
        data: dict[str, JsonValue] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S") + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }

        for field in _STRUCTURED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                data[field] = value

        if "correlation_id" not in data:
            ctx_correlation_id = _correlation_id.get()
            if ctx_correlation_id is not None:
                data["correlation_id"] = ctx_correlation_id

        for key, value in record.__dict__.items():
            if (
                key not in _RECORD_ATTRIBUTES
                and key not in data
                and not key.startswith("_")
                and value is not None
                and isinstance(value, (str, int, float, bool, list, dict))
            ):
                data[key] = value

        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)


class LoggerAdapter(logging.LoggerAdapter[logging.Logger]):
    """Logger adapter that injects structured context fields.

    Every entry carries ``operation`` and ``status``; ``status`` is inferred
    from the level when the caller does not set it. Fields bound on the
    adapter (see :func:`with_fields`) never override fields passed at the
    call site.

    Examples
    --------
    >>> from beanforge_common.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Scan complete", extra={"operation": "scan", "types": 4})
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        """Merge adapter fields and the context correlation ID into ``extra``.

        Parameters
        ----------
        msg : Any
            Log message.
        kwargs : MutableMapping[str, Any]
            Keyword arguments from the logging call.

        Returns
        -------
        tuple[Any, MutableMapping[str, Any]]
            Message and kwargs with the merged ``extra`` dict.
        """
        extra = kwargs.get("extra")
        merged: dict[str, Any] = dict(extra) if isinstance(extra, dict) else {}
        for key, value in (self.extra or {}).items():
            merged.setdefault(key, value)
        if "correlation_id" not in merged:
            ctx_correlation_id = _correlation_id.get()
            if ctx_correlation_id is not None:
                merged["correlation_id"] = ctx_correlation_id
        kwargs["extra"] = merged
        return msg, kwargs

    def log(self, level: int, msg: object, *args: object, **kwargs: Any) -> None:
        """Log at ``level`` making sure operation and status are present."""
        extra = kwargs.get("extra")
        extra = dict(extra) if isinstance(extra, dict) else {}
        extra.setdefault("operation", (self.extra or {}).get("operation", "unknown"))
        if "status" not in extra:
            if level >= logging.ERROR:
                extra["status"] = "error"
            elif level >= logging.WARNING:
                extra["status"] = "warning"
            else:
                extra["status"] = "success"
        kwargs["extra"] = extra
        super().log(level, msg, *args, **kwargs)

    def log_failure(
        self,
        message: str,
        *,
        exception: Exception | None = None,
        operation: str | None = None,
        **fields: object,
    ) -> None:
        """Log a failed operation at ERROR with the exception type and detail.

        Parameters
        ----------
        message : str
            Log message.
        exception : Exception | None, optional
            Exception that caused the failure. Defaults to ``None``.
        operation : str | None, optional
            Operation name. Defaults to ``None``.
        **fields : object
            Additional structured fields.
        """
        extra: dict[str, object] = {"status": "error"}
        if operation is not None:
            extra["operation"] = operation
        if exception is not None:
            extra["error_type"] = exception.__class__.__name__
            extra["error_detail"] = str(exception)
        extra.update(fields)
        self.error(message, extra=extra, exc_info=exception)


def get_logger(name: str) -> LoggerAdapter:
    """Get a logger adapter with structured logging support.

    Parameters
    ----------
    name : str
        Logger name (typically ``__name__`` of the calling module).

    Returns
    -------
    LoggerAdapter
        Adapter over ``logging.getLogger(name)``. A NullHandler is attached
        when the logger has no handlers; applications configure output via
        :func:`setup_logging`.
    """
    logger = logging.getLogger(name)

    # Add NullHandler if no handlers exist (prevents duplicate handlers in libraries)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return LoggerAdapter(logger, {})


def setup_logging(level: int | str = logging.INFO, stream: TextIO | None = None) -> None:
    """Configure the root logger with the JSON formatter.

    Parameters
    ----------
    level : int | str, optional
        Logging level threshold, numeric or by name. Defaults to ``logging.INFO``.
    stream : TextIO | None, optional
        Output stream. Defaults to :data:`sys.stdout`.
    """
    if isinstance(level, str):
        level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)


class _WithFieldsContext(AbstractContextManager[LoggerAdapter]):
    """Context manager implementation for `with_fields`."""

    def __init__(
        self, logger: logging.Logger | LoggerAdapter, fields: Mapping[str, object]
    ) -> None:
        self._logger = logger
        self._fields = dict(fields)
        self._token: contextvars.Token[str | None] | None = None

    def __enter__(self) -> LoggerAdapter:
        base_logger = (
            self._logger.logger if isinstance(self._logger, LoggerAdapter) else self._logger
        )
        correlation_id = self._fields.get("correlation_id")
        if isinstance(correlation_id, str):
            self._token = _correlation_id.set(correlation_id)
        return LoggerAdapter(cast("logging.Logger", base_logger), dict(self._fields))

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._token is not None:
            _correlation_id.reset(self._token)
        del exc_type, exc_value, exc_tb


def with_fields(
    logger: logging.Logger | LoggerAdapter,
    **fields: object,
) -> AbstractContextManager[LoggerAdapter]:
    """Bind structured fields to every entry logged inside a block.

    Parameters
    ----------
    logger : logging.Logger | LoggerAdapter
        Base logger to wrap (may already be an adapter).
    **fields : object
        Fields injected into each entry. A ``correlation_id`` string is also
        pushed into the context variable and restored on exit.

    Returns
    -------
    AbstractContextManager[LoggerAdapter]
        Context manager yielding the bound adapter.

    Examples
    --------
    >>> from beanforge_common.logging import get_logger, with_fields
    >>> logger = get_logger(__name__)
    >>> with with_fields(logger, operation="scan", prefix="app.models") as scan_logger:
    ...     scan_logger.debug("Scanning")
    """
    return _WithFieldsContext(logger, fields)


def measure_duration() -> float:
    """Return the current monotonic time in seconds for duration measurement.

    Returns
    -------
    float
        Value of :func:`time.monotonic`.
    """
    return time.monotonic()
