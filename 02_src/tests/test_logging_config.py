"""Tests for logging configuration."""

import json
import logging

import pytest

from ledgerchat.logging_config import JSONFormatter, get_logger, setup_logging
from ledgerchat.models import ConversationRef
from ledger_util import BOB


@pytest.fixture(autouse=True)
def restore_logging():
    """Keep handler changes from leaking into other tests."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def make_record(**extra):
    record = logging.LogRecord(
        name="ledgerchat.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="opened %s",
        args=("x",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSON log lines."""

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "ledgerchat.test"
        assert data["message"] == "opened x"
        assert "conversation" not in data

    def test_conversation_extra(self):
        """Test that the conversation passed via extra is rendered."""
        record = make_record(conversation=ConversationRef.direct(BOB))
        data = json.loads(JSONFormatter().format(record))
        assert data["conversation"] == f"direct:{BOB}"


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_file_handler(self, tmp_path):
        """Test that records are written as JSON lines to the log file."""
        log_file = tmp_path / "logs" / "app.log"
        setup_logging(log_level="DEBUG", log_file=str(log_file))

        get_logger("ledgerchat.test").info("written", extra={"conversation": "group:1"})
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        data = json.loads(line)
        assert data["message"] == "written"
        assert data["conversation"] == "group:1"
        assert logging.getLogger().level == logging.DEBUG

    def test_no_file_handler(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging(log_file="")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

    def test_quiet_loggers(self):
        setup_logging(log_file="")
        assert logging.getLogger("aiosqlite").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING
