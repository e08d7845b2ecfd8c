"""Logging setup for command-line entry points (rich console handler)."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(name)s: %(message)s"


def configure_logging(level: str | int = "INFO", *, console: Console | None = None) -> None:
    """Route the root logger to a `RichHandler`; safe to call more than once."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    handler = RichHandler(console=console, rich_tracebacks=True, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="[%X]"))
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
