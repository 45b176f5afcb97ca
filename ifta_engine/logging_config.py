"""
Centralized logging configuration.

Modules obtain named loggers through ``get_logger``; the CLI calls
``setup_logging`` once at startup.
"""

from __future__ import annotations

import logging
import sys
from typing import Union

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    level: Union[int, str] = logging.INFO, rich_output: bool = True
) -> None:
    """Configure the root logger.

    Args:
        level: Logging level or level name.
        rich_output: Render through rich on stderr; otherwise plain lines.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler: logging.Handler
    if rich_output:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="%H:%M:%S"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(name)-24s] %(levelname)-7s %(message)s",
                datefmt="%H:%M:%S",
            )
        )
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger."""
    return logging.getLogger(name)
