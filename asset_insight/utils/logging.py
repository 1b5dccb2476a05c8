"""
Root logger setup for the ``asset-insight`` CLI.

Library modules only ever do ``logger = logging.getLogger(__name__)``; the
handlers are installed once, by ``configure_logging``, when a CLI command
starts.  Tests leave the root logger alone and use ``caplog``.

Two line formats are available through ``[logging] json_format``:

  text  2026-10-19T09:00:00Z [INFO] asset_insight.workflow.engine: Workflow [...] completed
  json  {"ts": "2026-10-19T09:00:00Z", "level": "INFO", "logger": "...", "msg": "...",
         "workflow_id": "...", "execution_id": "..."}

Workflow and insights log calls attach identifiers with ``extra=``; the JSON
formatter lifts those keys onto the top level of the line.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from asset_insight.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Loggers that are chatty at DEBUG and carry nothing about our own engines.
_QUIET_LOGGERS = ("asyncio",)

_STANDARD_RECORD_KEYS = frozenset(
    vars(logging.LogRecord("probe", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


class JsonLineFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        line: dict[str, Any] = {
            "ts":     created.strftime(TIMESTAMP_FORMAT),
            "level":  record.levelname,
            "logger": record.name,
            "msg":    record.getMessage(),
        }
        line.update(_extra_fields(record))
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_RECORD_KEYS and not key.startswith("_")
    }


def _build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return JsonLineFormatter()
    text = logging.Formatter(TEXT_FORMAT, datefmt=TIMESTAMP_FORMAT)
    text.converter = _utc_timetuple
    return text


def _utc_timetuple(seconds: Optional[float]):
    return datetime.fromtimestamp(seconds or 0.0, tz=timezone.utc).timetuple()


def _open_log_file(log_file: str) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, encoding="utf-8")


def configure_logging(config: "LoggingConfig") -> None:
    """Install console (and optionally file) handlers on the root logger.

    Console output goes to stderr so that ``--json`` command output on stdout
    can be piped straight into another tool.  Calling this twice replaces the
    previous handlers rather than stacking them.

    Args:
        config: The ``[logging]`` section of ``AppConfig``.
    """
    level = logging.getLevelName(config.level)
    if not isinstance(level, int):
        level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        handlers.append(_open_log_file(config.log_file))

    formatter = _build_formatter(config.json_format)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
