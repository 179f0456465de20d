"""Logging setup for the service and command-line use."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(
    level: str = "INFO",
    verbose: bool = False,
    console: Optional[Console] = None,
) -> None:
    """Configure root logging with a rich handler.

    Args:
        level: Log level name (ignored when verbose is set)
        verbose: Force DEBUG level
        console: Optional rich console to log to
    """
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
