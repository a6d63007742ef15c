"""Console logging for statementbot."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import get_log_level


def setup_logging(level: Optional[int] = None, console: Optional[Console] = None) -> None:
    """Send ``statementbot`` log records to stderr through rich."""
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root = logging.getLogger("statementbot")
    root.handlers[:] = [handler]
    root.setLevel(level if level is not None else get_log_level())
