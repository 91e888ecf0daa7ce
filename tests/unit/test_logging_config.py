"""Tests for the JSON logging setup."""

import json
import logging
import sys

import pytest

from calbridge.logging_config import QUIET_LOGGERS, _JSONFormatter, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    root = logging.getLogger()
    level = root.level
    yield
    for handler in _json_handlers():
        root.removeHandler(handler)
    root.setLevel(level)


def _json_handlers():
    return [h for h in logging.getLogger().handlers if isinstance(h.formatter, _JSONFormatter)]


def test_record_carries_environment():
    formatter = _JSONFormatter("development")
    record = logging.LogRecord(
        "calbridge.calendar.service", logging.INFO, __file__, 1, "Created event %s", ("e1",), None
    )

    entry = json.loads(formatter.format(record))

    assert entry["env"] == "development"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "calbridge.calendar.service"
    assert entry["msg"] == "Created event e1"
    assert entry["ts"].endswith("+00:00")


def test_exception_is_included():
    formatter = _JSONFormatter("test")
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

    assert "RuntimeError: boom" in json.loads(formatter.format(record))["exc"]


def test_setup_installs_single_handler_and_level():
    setup_logging(level="debug", environment="test")
    setup_logging(level="warning", environment="production")

    handlers = _json_handlers()
    assert len(handlers) == 1
    assert handlers[0].formatter.environment == "production"
    assert logging.getLogger().level == logging.WARNING


def test_env_var_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "error")
    setup_logging(environment="test")
    assert logging.getLogger().level == logging.ERROR


def test_third_party_loggers_are_quieted():
    setup_logging(level="DEBUG", environment="test")
    for name in QUIET_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
