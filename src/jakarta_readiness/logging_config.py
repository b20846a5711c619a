"""Logging configuration for Jakarta Readiness."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "jakarta_readiness"


def setup_logging(level: int | str = logging.WARNING, console: Console | None = None) -> logging.Logger:
    """Attach a Rich handler to the package logger.

    Calling this more than once only adjusts the level.

    Args:
        level: Logging level name or number.
        console: Console to log to (defaults to stderr).

    Returns:
        The package logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    if not logger.handlers:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
        logger.propagate = False

    for handler in logger.handlers:
        handler.setLevel(level)
    return logger
