"""Logging setup for the ``ilimeta`` command line."""

from __future__ import annotations

import logging

_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Configure the root logger for a metadata read.

    ``--verbose`` selects DEBUG, which also shows skipped metatable rows and
    unmatched attributes. The HTTP client libraries stay at WARNING unless DEBUG
    is requested, so repository lookups do not drown the read summary.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)
