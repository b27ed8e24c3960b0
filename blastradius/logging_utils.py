"""Logging configuration for the blast CLI."""

from __future__ import annotations

import logging
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler

console = Console()
err_console = Console(stderr=True)

LOGGER_NAME = "blastradius"


def setup_logging(
    verbosity: Literal["quiet", "normal", "verbose"] = "normal",
) -> logging.Logger:
    """Attach a Rich handler to the package logger.

    ``normal`` shows warnings (truncated traversals, degraded scores);
    ``verbose`` adds info and debug records with timestamps and paths.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()

    level_map = {
        "quiet": logging.ERROR,
        "normal": logging.WARNING,
        "verbose": logging.DEBUG,
    }
    logger.setLevel(level_map[verbosity])

    handler = RichHandler(
        console=err_console,
        show_time=verbosity == "verbose",
        show_path=verbosity == "verbose",
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


def print_error(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {message}")
