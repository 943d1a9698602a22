"""Logging configuration for the speclens CLI.

Library modules only call ``logging.getLogger(__name__)``; handlers are
attached here, once per invocation, by :func:`speclens.app.main_callback`.
Records go to stderr through a Rich handler so they never mix with data on
stdout.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "speclens"


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """Configure the ``speclens`` logger.

    Args:
        verbose: Log at DEBUG when true, WARNING otherwise.
        console: Rich console for the handler; a new stderr console when
            omitted.

    Returns:
        The configured ``speclens`` logger.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Repeated invocations in one process (tests) must not stack handlers.
    logger.handlers.clear()

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=verbose,
        show_path=False,
        markup=False,
        rich_tracebacks=verbose,
    )
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
