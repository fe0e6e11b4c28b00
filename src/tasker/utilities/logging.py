"""Logging utilities for the Tasker client."""

import logging
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler

# Library code only configures its own namespace logger, never the root logger.
_TASKER_LOGGER_NAME = "tasker"


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO",
) -> None:
    """Configure logging for the Tasker client.

    Attaches a rich handler to the ``tasker`` namespace logger only, so
    application-level logging configuration is left alone. Repeated calls
    update the level without adding handlers.

    Args:
        level: The log level to use.
    """
    tasker_logger = logging.getLogger(_TASKER_LOGGER_NAME)
    tasker_logger.setLevel(level)

    if tasker_logger.handlers:
        return

    handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True)
    tasker_logger.addHandler(handler)
