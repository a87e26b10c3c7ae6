"""Logging setup. Log records go to stderr through rich."""
from __future__ import annotations

import logging
import typing as t

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "WARNING", console: t.Optional[Console] = None) -> None:
    """Route the ``tracker`` and ``syllabus_server`` loggers through a RichHandler."""
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    for name in ("tracker", "syllabus_server", "tracker_server"):
        logger = logging.getLogger(name)
        logger.handlers[:] = [handler]
        logger.setLevel(level.upper())
        logger.propagate = False
