# log.py
# Logging setup for the tool_program package.

import logging

from rich.logging import RichHandler

from tool_program.display import console


def configure_logging(level: str | int = "WARNING") -> logging.Logger:
    """Route the package logger through rich, on the same console as display."""
    logger = logging.getLogger("tool_program")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    return logger
