"""Tests for logging utilities."""

from __future__ import annotations

import json
import logging
from pathlib import Path
import sys

import pytest

from corpsebeats.core.utils.logging import (
    StructuredJSONFormatter,
    configure_logging,
    get_logger,
    log_performance,
)


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="corpsebeats.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_structured_formatter_includes_extra_fields() -> None:
    entry = json.loads(StructuredJSONFormatter().format(_record("Round 0 done", run_id="ab12")))

    assert entry["level"] == "INFO"
    assert entry["message"] == "Round 0 done"
    assert entry["context"]["logger_name"] == "corpsebeats.test"
    assert entry["context"]["run_id"] == "ab12"
    assert entry["timestamp"].endswith("+00:00")


def test_structured_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record("failed")
        record.exc_info = sys.exc_info()

    entry = json.loads(StructuredJSONFormatter().format(record))

    assert entry["context"]["error_type"] == "RuntimeError"
    assert entry["context"]["error_message"] == "boom"
    assert "Traceback" in entry["context"]["stack_trace"]


def test_get_logger_with_context() -> None:
    plain = get_logger("corpsebeats.x")
    assert isinstance(plain, logging.Logger)

    adapted = get_logger("corpsebeats.x", run_id="ab12")
    assert isinstance(adapted, logging.LoggerAdapter)
    assert adapted.extra == {"run_id": "ab12"}


def test_log_performance_sync(caplog: pytest.LogCaptureFixture) -> None:
    @log_performance
    def add(a: int, b: int) -> int:
        return a + b

    with caplog.at_level(logging.DEBUG):
        assert add(2, 3) == 5

    assert any("took" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_log_performance_async(caplog: pytest.LogCaptureFixture) -> None:
    @log_performance
    async def fetch() -> str:
        return "done"

    with caplog.at_level(logging.DEBUG):
        assert await fetch() == "done"

    assert any("fetch took" in r.getMessage() for r in caplog.records)


def test_configure_logging_to_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    log_file = tmp_path / "corpse.jsonl"
    try:
        configure_logging(level="debug", filename=str(log_file), structured=True)
        logging.getLogger("corpsebeats.test").info("hello")
        for handler in root.handlers:
            handler.flush()

        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.ERROR
        assert json.loads(log_file.read_text().splitlines()[-1])["message"] == "hello"
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
