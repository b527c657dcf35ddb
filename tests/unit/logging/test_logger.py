# tests/unit/logging/test_logger.py — v2
"""Tests for logging/logger.py — logger factory, formatters, rotation, alerts."""

from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from profilegen.logging.context import clear_context, set_provider_context, set_request_context
from profilegen.logging.logger import (
    JsonFormatter,
    TextFormatter,
    create_rotating_handler,
    get_logger,
    log_billing_alert,
    parse_size,
    setup_logging,
)


def _record(msg: str = "Hello", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=level, pathname="", lineno=0, msg=msg, args=(), exc_info=None,
    )


class TestJsonFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Hello"
        assert "timestamp" in parsed
        assert "context" not in parsed

    def test_format_with_context(self):
        set_request_context("appraiser-1", "req1")
        set_provider_context("bfl")
        parsed = json.loads(JsonFormatter().format(_record("test msg")))
        assert parsed["context"] == {
            "entity_id": "appraiser-1", "request_id": "req1", "provider": "bfl",
        }

    def test_format_with_data(self):
        record = _record()
        record.data = {"alert": "billing_blocked"}
        parsed = json.loads(JsonFormatter().format(record))
        assert parsed["data"]["alert"] == "billing_blocked"


class TestTextFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        output = TextFormatter().format(_record("Hello text"))
        assert "[INFO    ]" in output
        assert output.endswith("- Hello text")

    def test_format_with_entity_and_provider(self):
        set_request_context("loc-9", "r1")
        set_provider_context("fal")
        output = TextFormatter().format(_record())
        assert "[loc-9]" in output
        assert "(fal)" in output


class TestGetLogger:
    def test_namespaced(self):
        assert get_logger("cache").name == "profilegen.cache"


class TestParseSize:
    def test_units(self):
        assert parse_size("10KB") == 10 * 1024
        assert parse_size("10MB") == 10 * 1024 ** 2
        assert parse_size("1 gb") == 1024 ** 3

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_size("ten megs")


class TestSetupLogging:
    def teardown_method(self):
        logging.getLogger("profilegen").handlers.clear()

    def test_console_handler(self):
        setup_logging(level="DEBUG", log_format="text")
        root = logging.getLogger("profilegen")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_file_handler(self, tmp_path):
        setup_logging(log_file=tmp_path / "logs" / "app.log", rotation="1MB", retention=2)
        handlers = logging.getLogger("profilegen").handlers
        rotating = [h for h in handlers if isinstance(h, RotatingFileHandler)]
        assert len(rotating) == 1
        assert rotating[0].maxBytes == 1024 ** 2
        assert rotating[0].backupCount == 2
        rotating[0].close()

    def test_quiets_httpx(self):
        setup_logging()
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_create_rotating_handler_makes_parent(self, tmp_path):
        handler = create_rotating_handler(tmp_path / "nested" / "x.log")
        assert (tmp_path / "nested").is_dir()
        handler.close()


class TestBillingAlert:
    def test_critical_record(self, caplog):
        with caplog.at_level(logging.CRITICAL, logger="profilegen.alerts"):
            log_billing_alert("bfl", "HTTP 402: payment required")
        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.levelno == logging.CRITICAL
        assert "PAYMENT ISSUE" in record.getMessage()
        assert record.data["provider"] == "bfl"
