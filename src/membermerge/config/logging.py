"""Logging setup for the membermerge command line."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Send merge progress and store warnings to stderr.

    Called once by the CLI entry point. Library code only logs through
    module-level loggers. ``force`` replaces handlers installed earlier,
    e.g. by a test runner.
    """

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
