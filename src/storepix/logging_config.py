"""Logging configuration for storepix."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from storepix.config import get_settings


def setup_logging(log_level: Optional[str] = None) -> None:
    """Attach a rich handler on stderr to the ``storepix`` logger."""
    if log_level is None:
        log_level = get_settings().log_level

    logger = logging.getLogger("storepix")
    logger.setLevel(getattr(logging, log_level.upper(), logging.WARNING))

    # Repeated CLI invocations in one process must not stack handlers
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
