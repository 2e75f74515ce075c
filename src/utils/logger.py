"""
Logging utility
"""
import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from config.settings import LOG_LEVEL, LOG_FILE, LOGS_DIR

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logger(name: str, level: str = LOG_LEVEL, log_file: str = LOG_FILE) -> logging.Logger:
    """
    Create (or return) a configured logger

    Args:
        name: Logger name, usually __name__
        level: Log level name
        log_file: Optional file name; relative names land in data/logs/

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    # Already configured
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        if not path.is_absolute():
            path = LOGS_DIR / path
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            path, when="midnight", backupCount=7, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
