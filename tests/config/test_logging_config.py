from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from ilimeta.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _restore_logger_levels() -> Iterator[None]:
    levels = {name: logging.getLogger(name).level for name in ("", "httpx", "httpcore")}
    yield
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


def test_http_clients_are_quiet_at_info() -> None:
    configure_logging(level=logging.INFO, force=True)

    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING


def test_verbose_mode_shows_http_traffic() -> None:
    configure_logging(level=logging.DEBUG, force=True)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.DEBUG
