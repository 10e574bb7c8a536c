"""Tests for beanforge_common.logging module."""

from __future__ import annotations

import io
import json
import logging

from beanforge_common.errors import TypeLoadError
from beanforge_common.logging import (
    JsonFormatter,
    LoggerAdapter,
    get_logger,
    measure_duration,
    setup_logging,
    with_fields,
)


def _capture(name: str) -> tuple[logging.Logger, io.StringIO]:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter())
    logger = logging.getLogger(name)
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger, stream


def _entries(stream: io.StringIO) -> list[dict[str, object]]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


class TestGetLogger:
    """Tests for get_logger function."""

    def test_returns_adapter_with_null_handler(self) -> None:
        """Library loggers never configure output themselves."""
        logger = get_logger(f"{__name__}.null_handler")

        assert isinstance(logger, LoggerAdapter)
        assert [type(h) for h in logger.logger.handlers] == [logging.NullHandler]
        assert logger.logger.propagate is True


class TestLoggerAdapter:
    """Tests for structured fields injected by LoggerAdapter."""

    def test_status_inferred_from_level(self) -> None:
        """Entries carry operation and a level-derived status."""
        base, stream = _capture(f"{__name__}.status")
        adapter = LoggerAdapter(base, {})

        adapter.info("ok")
        adapter.warning("careful", extra={"operation": "scan"})
        adapter.error("bad")

        entries = _entries(stream)
        assert [e["status"] for e in entries] == ["success", "warning", "error"]
        assert [e["operation"] for e in entries] == ["unknown", "scan", "unknown"]

    def test_log_failure_records_exception(self) -> None:
        """log_failure attaches error type, detail and traceback."""
        base, stream = _capture(f"{__name__}.failure")
        adapter = LoggerAdapter(base, {})

        adapter.log_failure(
            "Load failed", exception=TypeLoadError("app.Missing"), operation="scan", module_name="m"
        )

        (entry,) = _entries(stream)
        assert entry["status"] == "error"
        assert entry["operation"] == "scan"
        assert entry["error_type"] == "TypeLoadError"
        assert entry["module_name"] == "m"
        assert "Unable to load app.Missing" in str(entry["error_detail"])


class TestWithFields:
    """Tests for with_fields and correlation IDs."""

    def test_binds_fields_and_scopes_correlation_id(self) -> None:
        """Bound fields reach every entry; the correlation ID is scoped to the block."""
        base, stream = _capture(f"{__name__}.fields")
        other = LoggerAdapter(base, {})

        with with_fields(base, operation="scan", prefix="app", correlation_id="req-1") as bound:
            bound.debug("inside", extra={"root": "/srv"})
            other.debug("sibling")
        other.debug("after")

        inside, sibling, after = _entries(stream)
        assert inside["operation"] == "scan"
        assert inside["prefix"] == "app"
        assert inside["root"] == "/srv"
        assert inside["correlation_id"] == "req-1"
        assert sibling["correlation_id"] == "req-1"
        assert "correlation_id" not in after

    def test_call_site_fields_win(self) -> None:
        """Fields passed at the call site override bound fields."""
        base, stream = _capture(f"{__name__}.override")

        with with_fields(base, operation="scan") as bound:
            bound.info("x", extra={"operation": "build"})

        assert _entries(stream)[0]["operation"] == "build"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_installs_json_handler(self, isolated_root_logger: logging.Logger) -> None:
        """The root logger emits JSON at the requested level."""
        stream = io.StringIO()

        setup_logging("warning", stream=stream)
        logging.getLogger(f"{__name__}.setup").info("hidden")
        logging.getLogger(f"{__name__}.setup").warning("shown")

        assert isolated_root_logger.level == logging.WARNING
        assert [e["message"] for e in _entries(stream)] == ["shown"]

    def test_measure_duration_is_monotonic(self) -> None:
        """measure_duration never goes backwards."""
        first = measure_duration()
        assert measure_duration() >= first
