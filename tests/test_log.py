"""Tests for the logging setup."""

import logging

import pytest

from ambient_brightness.core import log
from ambient_brightness.core.log import configure_logging


@pytest.fixture
def root_handlers():
    root = logging.getLogger()
    # drop handlers left by earlier configure_logging calls
    for h in log._handlers:
        root.removeHandler(h)
        h.close()
    log._handlers.clear()
    before = list(root.handlers)
    level = root.level
    yield root
    for h in list(root.handlers):
        if h not in before:
            root.removeHandler(h)
            h.close()
    log._handlers.clear()
    root.setLevel(level)


def test_repeated_calls_do_not_stack_handlers(root_handlers):
    before = len(root_handlers.handlers)
    configure_logging("INFO")
    configure_logging("DEBUG")
    configure_logging("WARNING")
    assert len(root_handlers.handlers) == before + 1
    assert root_handlers.level == logging.WARNING


def test_log_file_handler(root_handlers, tmp_path):
    log_file = tmp_path / "ab.log"
    before = len(root_handlers.handlers)
    configure_logging("INFO", str(log_file))
    assert len(root_handlers.handlers) == before + 2

    logging.getLogger("ambient_brightness.test").info("hello")
    configure_logging("INFO")
    assert len(root_handlers.handlers) == before + 1
    assert "hello" in log_file.read_text()
