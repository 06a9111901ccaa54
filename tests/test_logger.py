"""Tests for logging setup."""

import logging

from logger import LOGGER_NAME, setup_logging


def test_writes_dated_file_at_configured_level(tmp_path):
    try:
        configured = setup_logging(tmp_path / "logs", "DEBUG")

        assert configured.name == LOGGER_NAME
        assert configured.level == logging.DEBUG
        configured.debug("restored 3 reminders")
        for handler in configured.handlers:
            handler.flush()

        [log_file] = (tmp_path / "logs").glob("reminders-*.log")
        assert "restored 3 reminders" in log_file.read_text(encoding="utf-8")
    finally:
        setup_logging()


def test_repeated_setup_replaces_handlers(tmp_path):
    try:
        setup_logging(tmp_path, "INFO")
        configured = setup_logging(tmp_path, "INFO")

        file_handlers = [h for h in configured.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
    finally:
        setup_logging()
