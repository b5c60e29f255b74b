"""Unit tests for logger setup."""

import logging

from logger import get_logger


def test_handlers_added_once(tmp_path):
    log_file = tmp_path / "test.log"
    first = get_logger("LoggerTest", "DEBUG", log_file=str(log_file))
    second = get_logger("LoggerTest", "INFO", log_file=str(log_file))

    assert first is second
    assert len(first.handlers) == 2
    assert first.level == logging.DEBUG
    assert first.propagate is False


def test_writes_plain_lines_to_file(tmp_path):
    log_file = tmp_path / "test.log"
    logger = get_logger("LoggerFileTest", "INFO", log_file=str(log_file))

    logger.info("Wallet 1/2: Claim confirmed")
    for handler in logger.handlers:
        handler.flush()

    content = log_file.read_text(encoding="utf-8")
    assert "| INFO     | LoggerFileTest | Wallet 1/2: Claim confirmed" in content
