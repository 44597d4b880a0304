#!/usr/bin/env python3
"""
Logging setup.
Routes the package's log records through rich so they sit cleanly beside
the REPL and watcher output.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import get_setting

_HANDLER_NAME = 'cellcoach-rich'


def configure_logging(level: Optional[str] = None, console: Optional[Console] = None) -> logging.Logger:
    """
    Install a RichHandler on the root logger. Calling it again only updates
    the level.
    """
    level_name = (level or get_setting('log_level') or 'WARNING').upper()
    numeric_level = getattr(logging, level_name, logging.WARNING)

    root = logging.getLogger()
    if not any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter('%(name)s: %(message)s'))
        root.addHandler(handler)

    root.setLevel(numeric_level)
    return root
