"""
Logging Configuration — Structured logging setup.

Every menumirror module logs through the root handler installed here.
Sync code passes the menu it is working on through ``extra=``:

    logger.info("Synced", extra={"menu_slug": "footer", "menu_id": 2})

and both formatters surface that context:

- ``json``: one object per line, context as top-level keys
- ``text``: ``12:34:56 INFO    [executor       ] Synced <footer#2>``

## Environment Variables

- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_FORMAT: json, text (default: text)

## Usage

    from menumirror.logging_config import setup_logging

    setup_logging()  # Call once at startup
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import IO, Any, Dict, Optional

# Context passed through `extra=` by the sync engine
EXTRA_FIELDS = ("menu_slug", "menu_id", "topic")

# Loggers that would otherwise repeat the admin server's own request lines
QUIET_LOGGERS = ("werkzeug", "httpx", "httpcore")


def sync_context(record: logging.LogRecord) -> Dict[str, Any]:
    """The menu context attached to a record, if any."""
    return {key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    {"ts": "...", "level": "INFO", "logger": "menumirror.engine.executor",
     "message": "...", "menu_slug": "footer", "menu_id": 2}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(sync_context(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """Compact single-line output for terminals, coloured by level."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: Optional[bool] = None):
        super().__init__()
        self.use_color = sys.stderr.isatty() if use_color is None else use_color

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:7}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelno, '')}{level}{self.RESET}"

        source = record.name.rsplit(".", 1)[-1][:15]
        line = f"{stamp} {level} [{source:15}] {record.getMessage()}"

        context = sync_context(record)
        if "menu_slug" in context:
            tag = str(context["menu_slug"])
            if "menu_id" in context:
                tag = f"{tag}#{context['menu_id']}"
            line = f"{line} <{tag}>"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    level: Optional[str] = None,
    format_type: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """
    Install the menumirror handler on the root logger.

    Args:
        level: Log level name. Defaults to LOG_LEVEL, then INFO.
        format_type: ``json`` or ``text``. Defaults to LOG_FORMAT, then text.
        stream: Where to write. Defaults to stderr.
    """
    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    use_json = (format_type or os.environ.get("LOG_FORMAT") or "text").lower() == "json"

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if use_json else HumanFormatter())
    handler.setLevel(numeric_level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging configured: level={level_name}, format={'json' if use_json else 'text'}"
    )
