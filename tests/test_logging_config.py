"""Tests for log formatting."""

from __future__ import annotations

import json
import logging

from utils.logging_config import SanitizingFormatter, StructuredFormatter, setup_logging


def _record(message: str, *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "mcap_bot.test", logging.INFO, __file__, 1, message, args, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_sanitizing_formatter_redacts_private_key():
    formatter = SanitizingFormatter("%(message)s")

    output = formatter.format(_record("Loaded config: %s", {"private_key": "5abcDEF"}))

    assert "5abcDEF" not in output
    assert "[REDACTED]" in output


def test_structured_formatter_includes_extra_fields():
    formatter = StructuredFormatter()

    output = json.loads(
        formatter.format(_record("Tick complete", market_cap=1200000.0, decision="buy"))
    )

    assert output["message"] == "Tick complete"
    assert output["logger"] == "mcap_bot.test"
    assert output["market_cap"] == 1200000.0
    assert output["decision"] == "buy"


def test_setup_logging_installs_single_handler():
    root = logging.getLogger()
    previous = list(root.handlers), root.level
    try:
        setup_logging("DEBUG", structured=True)
        setup_logging("WARNING", structured=True)

        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        assert logging.getLogger("solana").level == logging.WARNING
    finally:
        root.handlers[:] = previous[0]
        root.setLevel(previous[1])
