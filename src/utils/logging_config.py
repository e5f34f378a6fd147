"""Logging setup: sanitized text lines or JSON lines carrying tick fields."""

from __future__ import annotations

import json
import logging
import re
import sys
from pathlib import Path
from typing import Any

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
QUIET_LOGGERS = ("aiohttp", "httpx", "httpcore", "solana")

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
        )
        return json.dumps(entry, default=str)


class SanitizingFormatter(logging.Formatter):
    """Masks values that follow wallet-secret keys in rendered messages."""

    SENSITIVE_KEYS = ("private_key", "secret_key", "secret", "password")
    _PATTERN = re.compile(
        r"(?P<key>" + "|".join(SENSITIVE_KEYS) + r")['\"]?\s*[:=]\s*['\"]?[\w\-\[\], ]+",
        re.IGNORECASE,
    )

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        sanitized = self._PATTERN.sub(lambda m: f"{m.group('key')}=[REDACTED]", message)
        if sanitized == message:
            return super().format(record)
        clone = logging.makeLogRecord(record.__dict__)
        clone.msg = sanitized
        clone.args = ()
        return super().format(clone)


def build_formatter(*, structured: bool, sanitize: bool) -> logging.Formatter:
    if structured:
        return StructuredFormatter()
    if sanitize:
        return SanitizingFormatter(TEXT_FORMAT, datefmt=DATE_FORMAT)
    return logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(
    level: str = "INFO",
    *,
    structured: bool = False,
    sanitize: bool = True,
    log_file: str | None = None,
) -> None:
    """
    Configure the root logger for the bot.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        structured: Emit one JSON object per line, including ``extra=`` fields
        sanitize: Redact private keys from text output
        log_file: Optional file that receives the same lines as stdout
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    formatter = build_formatter(structured=structured, sanitize=sanitize)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except OSError as exc:
            root_logger.warning("Failed to set up file logging to %s: %s", log_file, exc)
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
