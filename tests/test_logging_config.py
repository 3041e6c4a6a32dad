"""
Tests for logging configuration module.

Tests cover:
- Log directory and file creation
- Log level configuration via environment variables
- Per-module logger naming
- Log rotation settings
- Rich console handler for the command line
"""

import logging
import re
from logging.handlers import RotatingFileHandler

import pytest
from rich.logging import RichHandler

from taskboard.logging_config import (
    BACKUP_COUNT,
    MAX_BYTES,
    get_logger,
    setup_logging,
)


@pytest.fixture
def mock_log_dir(tmp_path, monkeypatch):
    """Point LOG_DIR and LOG_FILE at a temporary directory."""
    log_dir = tmp_path / ".taskboard" / "logs"
    log_file = log_dir / "taskboard.log"

    monkeypatch.setattr("taskboard.logging_config.LOG_DIR", log_dir)
    monkeypatch.setattr("taskboard.logging_config.LOG_FILE", log_file)

    return log_dir, log_file


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch):
    """Reset logging handlers before and after each test."""
    monkeypatch.delenv("TASKBOARD_LOG_LEVEL", raising=False)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)

    yield

    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)


def _flush():
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestLogFile:
    """Tests for the rotating log file."""

    def test_log_directory_created(self, mock_log_dir):
        log_dir, _ = mock_log_dir
        assert not log_dir.exists()

        setup_logging()

        assert log_dir.is_dir()

    def test_messages_written_with_format(self, mock_log_dir):
        _, log_file = mock_log_dir
        setup_logging()

        get_logger("taskboard.services.relocation").warning("Task listed in no column")
        _flush()

        content = log_file.read_text()
        assert "taskboard.services.relocation" in content
        assert "WARNING" in content
        assert "Task listed in no column" in content
        assert re.search(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", content)

    def test_rotation_settings(self, mock_log_dir):
        setup_logging()

        handlers = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
        assert len(handlers) == 1
        assert handlers[0].maxBytes == MAX_BYTES
        assert handlers[0].backupCount == BACKUP_COUNT

    def test_repeated_setup_does_not_duplicate_handlers(self, mock_log_dir):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1


class TestLogLevel:
    """Tests for log level selection."""

    def test_default_level_is_info(self, mock_log_dir):
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_level_from_environment(self, mock_log_dir, monkeypatch):
        monkeypatch.setenv("TASKBOARD_LOG_LEVEL", "debug")
        setup_logging()
        assert logging.getLogger().level == logging.DEBUG

    def test_explicit_level_wins(self, mock_log_dir, monkeypatch):
        monkeypatch.setenv("TASKBOARD_LOG_LEVEL", "DEBUG")
        setup_logging(log_level="ERROR")
        assert logging.getLogger().level == logging.ERROR

    def test_invalid_level_falls_back_to_info(self, mock_log_dir):
        setup_logging(log_level="CHATTY")
        assert logging.getLogger().level == logging.INFO

    def test_debug_filtered_at_info(self, mock_log_dir):
        _, log_file = mock_log_dir
        setup_logging(log_level="INFO")

        logger = get_logger("filtered")
        logger.debug("hidden detail")
        logger.info("visible detail")
        _flush()

        content = log_file.read_text()
        assert "hidden detail" not in content
        assert "visible detail" in content


class TestConsoleHandler:
    """Tests for the rich console handler."""

    def test_console_handler_replaces_file(self, mock_log_dir):
        log_dir, _ = mock_log_dir
        setup_logging(use_console_handler=True)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], RichHandler)
        assert not log_dir.exists()


class TestGetLogger:
    """Tests for per-module loggers."""

    def test_logger_name(self):
        assert get_logger("taskboard.services.board_store").name == "taskboard.services.board_store"

    def test_same_name_same_logger(self):
        assert get_logger("same_module") is get_logger("same_module")
