"""Tests for logging setup."""

import logging
import logging.handlers

import pytest

from ridevoice import logging_setup
from ridevoice.logging_setup import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Remove handlers installed by the test and restore the level."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in logging_setup._installed_handlers:
        root.removeHandler(handler)
        handler.close()
    logging_setup._installed_handlers.clear()
    root.setLevel(level)


def installed():
    """Root handlers installed by setup_logging."""
    return [h for h in logging.getLogger().handlers if h in logging_setup._installed_handlers]


def test_file_and_console_handlers(tmp_path):
    """A rotating file handler is added next to the console handler."""
    log_file = tmp_path / "logs" / "ridevoice.log"

    setup_logging("DEBUG", log_file)
    logging.getLogger("ridevoice.test").info("hello")

    assert logging.getLogger().level == logging.DEBUG
    handlers = installed()
    assert len(handlers) == 2
    file_handlers = [
        h for h in handlers if isinstance(h, logging.handlers.RotatingFileHandler)
    ]
    assert len(file_handlers) == 1
    file_handlers[0].flush()
    assert "hello" in log_file.read_text()


def test_repeated_setup_replaces_handlers(tmp_path):
    """Calling setup twice does not duplicate handlers."""
    setup_logging("INFO", tmp_path / "a.log")
    setup_logging("INFO", tmp_path / "b.log")

    assert len(installed()) == 2


def test_console_only():
    """Without a log file only the console handler is installed."""
    setup_logging("WARNING")
    handlers = installed()
    assert len(handlers) == 1
    assert handlers[0].level == logging.WARNING
