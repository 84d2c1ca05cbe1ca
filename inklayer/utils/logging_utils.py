"""
Application logging: a rotating log file, plus the console in debug mode.
"""
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from .resource_loader import get_log_dir

LOG_FILE_NAME = "inklayer.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 1_000_000
LOG_BACKUPS = 3


def _formatter() -> logging.Formatter:
    return logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)


def configure_logging(*, debug: bool = False, log_path: Optional[str] = None) -> None:
    """
    Install the application's log handlers on the root logger.

    The file handler is installed once per process. A later call only
    adjusts the level, and adds the console handler if debug was turned on.

    Args:
        debug: Log at DEBUG level and echo records to the console
        log_path: Log file to write; defaults to ``inklayer.log`` in the
            log directory (``INKLAYER_LOG_DIR`` if set)
    """
    level = logging.DEBUG if debug else logging.INFO
    root = logging.getLogger()
    root.setLevel(level)

    if not getattr(root, "_inklayer_configured", False):
        if log_path is None:
            log_path = str(get_log_dir() / LOG_FILE_NAME)

        file_handler = RotatingFileHandler(
            log_path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
        )
        file_handler.setFormatter(_formatter())
        root.addHandler(file_handler)
        setattr(root, "_inklayer_configured", True)

    for handler in root.handlers:
        if isinstance(handler, RotatingFileHandler):
            handler.setLevel(level)

    if debug and getattr(root, "_inklayer_console", None) is None:
        console = logging.StreamHandler()
        console.setLevel(logging.DEBUG)
        console.setFormatter(_formatter())
        root.addHandler(console)
        setattr(root, "_inklayer_console", console)
