"""Tests for logging setup."""

import json
import logging
from pathlib import Path

import pytest

from themevault.config import settings
from themevault.logging_config import JSONFormatter, setup_logging


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger("themevault")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def test_writes_context_log_file(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(settings, "log_dir", str(tmp_path))
    monkeypatch.setattr(settings, "log_format", "standard")

    setup_logging(context="sync", level="INFO", console=False)
    logging.getLogger("themevault.services.sync").info("Synced theme 'nordic'")
    for handler in logging.getLogger("themevault").handlers:
        handler.flush()

    content = (tmp_path / "sync.log").read_text()
    assert "[INFO] [themevault.services.sync] Synced theme 'nordic'" in content


def test_console_disabled(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(settings, "log_file_enabled", False)

    setup_logging(console=False)

    assert logging.getLogger("themevault").handlers == []


def test_repeated_setup_does_not_duplicate_handlers(monkeypatch):
    monkeypatch.setattr(settings, "log_file_enabled", False)

    setup_logging(console=True)
    setup_logging(console=True)

    assert len(logging.getLogger("themevault").handlers) == 2


def test_json_formatter():
    record = logging.LogRecord(
        "themevault.cli", logging.WARNING, __file__, 1, "Theme %s missing", ("zen",), None
    )

    payload = json.loads(JSONFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "themevault.cli"
    assert payload["message"] == "Theme zen missing"
