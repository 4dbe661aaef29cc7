"""Tests for logging setup."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from bookmarked.core.log import setup_logging


@pytest.fixture(autouse=True)
def reset_logger() -> Iterator[None]:
    """Detach handlers added by the tests."""
    yield
    logger = logging.getLogger("bookmarked")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True


def test_replaces_handlers() -> None:
    """Calling setup twice does not duplicate output."""
    setup_logging()
    logger = setup_logging(logging.DEBUG)

    assert logger.name == "bookmarked"
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert logger.propagate is False


def test_log_file(tmp_path: Path) -> None:
    """Records go to the optional log file too."""
    log_path = tmp_path / "logs" / "bookmarked.log"
    setup_logging(log_path=log_path)

    logging.getLogger("bookmarked.client.sync.engine").info("Successfully synced to server")
    for handler in logging.getLogger("bookmarked").handlers:
        handler.flush()

    content = log_path.read_text()
    assert "bookmarked.client.sync.engine - INFO - Successfully synced to server" in content
