"""
Configure logging for the voice bridge.

All bridge modules log through the ``voice_bridge`` logger. It writes to
stdout and, unless disabled, to a size-rotated file. The level and the file
location come from ``LOG_LEVEL`` and ``LOG_FILE``; setting ``LOG_FILE`` to an
empty string keeps logging on the console only (useful in containers).
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Tuple

from voice_bridge.config.constants import LOGGER_NAME

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DEFAULT_LOG_FILE = Path("logs") / "voice_bridge.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def _resolve_log_file(log_file: Optional[str]) -> Optional[Path]:
    if log_file is None:
        log_file = os.getenv("LOG_FILE", str(DEFAULT_LOG_FILE))
    return Path(log_file) if log_file.strip() else None


def _build_handlers(
    formatter: logging.Formatter, log_file: Optional[Path]
) -> Tuple[List[logging.Handler], Optional[str]]:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    handlers: List[logging.Handler] = [console_handler]
    if log_file is None:
        return handlers, None

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=MAX_LOG_SIZE, backupCount=BACKUP_COUNT)
    except OSError as e:
        return handlers, f"Could not set up file logging at {log_file}: {e}"
    file_handler.setFormatter(formatter)
    handlers.append(file_handler)
    return handlers, None


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the bridge logger.

    Args:
        level: Log level name; falls back to LOG_LEVEL, then INFO
        log_file: Rotating log file path; falls back to LOG_FILE. An empty
            string disables file logging.

    Returns:
        logging.Logger: The configured ``voice_bridge`` logger
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    # reconfiguring replaces handlers instead of stacking them
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    handlers, error = _build_handlers(logging.Formatter(LOG_FORMAT), _resolve_log_file(log_file))
    for handler in handlers:
        logger.addHandler(handler)
    if error:
        logger.warning(error)

    logger.propagate = False
    logger.debug(f"Logging configured at {level_name}")
    return logger
