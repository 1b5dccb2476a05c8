"""
Tests for the root logger setup.

What we test
------------
- JsonLineFormatter: one JSON object per record, ``extra=`` keys lifted to
  the top level, exception text under ``exc``.
- configure_logging: console handler on stderr, optional file handler whose
  parent directories are created, repeated calls replace handlers.
"""

from __future__ import annotations

import json
import logging
import sys

import pytest

from asset_insight.config import LoggingConfig
from asset_insight.utils.logging import JsonLineFormatter, configure_logging


def _record(msg: str = "hello %s", args=("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "asset_insight.test", logging.INFO, __file__, 1, msg, args, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)


class TestJsonLineFormatter:
    def test_core_fields(self):
        line = json.loads(JsonLineFormatter().format(_record()))
        assert line["level"] == "INFO"
        assert line["logger"] == "asset_insight.test"
        assert line["msg"] == "hello world"
        assert line["ts"].endswith("Z")

    def test_extra_fields_lifted(self):
        record = _record(workflow_id="maintenance_alert", execution_id="maintenance_alert_abc")
        line = json.loads(JsonLineFormatter().format(record))
        assert line["workflow_id"] == "maintenance_alert"
        assert line["execution_id"] == "maintenance_alert_abc"

    def test_standard_attributes_not_repeated(self):
        line = json.loads(JsonLineFormatter().format(_record()))
        assert "lineno" not in line
        assert "args" not in line

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()
        line = json.loads(JsonLineFormatter().format(record))
        assert "RuntimeError: boom" in line["exc"]


class TestConfigureLogging:
    def test_console_handler_on_stderr(self, restore_root_logger):
        configure_logging(LoggingConfig(level="WARNING"))
        root = restore_root_logger
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr

    def test_file_handler_creates_parent_dirs(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "nested" / "insight.log"
        configure_logging(LoggingConfig(log_file=str(log_file), json_format=True))
        root = restore_root_logger
        assert log_file.parent.is_dir()
        assert len(root.handlers) == 2
        assert all(isinstance(h.formatter, JsonLineFormatter) for h in root.handlers)

    def test_repeated_calls_replace_handlers(self, restore_root_logger):
        configure_logging(LoggingConfig())
        configure_logging(LoggingConfig())
        assert len(restore_root_logger.handlers) == 1
