"""
Logging setup for docsplice.

Console output goes through rich; an optional rotating log file receives
the plain formatted records.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from rich.console import Console
from rich.logging import RichHandler

from docsplice.config import LoggingConfig

_HANDLER_MARK = "_docsplice_handler"


def setup_logging(config: LoggingConfig | None = None, console: Console | None = None) -> None:
    """
    Configure the ``docsplice`` logger hierarchy.

    Calling this more than once replaces the handlers installed by the
    previous call instead of stacking them.

    Args:
        config: Logging configuration. Defaults are used if None.
        console: Rich console for the console handler.
    """
    config = config or LoggingConfig()
    logger = logging.getLogger("docsplice")
    logger.setLevel(config.level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)
            handler.close()

    rich_handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    setattr(rich_handler, _HANDLER_MARK, True)
    logger.addHandler(rich_handler)

    if config.file is not None:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(config.format))
        setattr(file_handler, _HANDLER_MARK, True)
        logger.addHandler(file_handler)
