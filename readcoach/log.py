"""Logging setup shared by the terminal session and the tutor service."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_configured = False


def setup_logging(level: str = 'WARNING', console: Optional[Console] = None) -> None:
    """Route the `readcoach` logger hierarchy through a rich handler (idempotent)."""
    global _configured
    if _configured:
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter('%(message)s', datefmt='[%X]'))

    root = logging.getLogger('readcoach')
    root.setLevel(level.upper())
    root.addHandler(handler)
    root.propagate = False
    _configured = True
