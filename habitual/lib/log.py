import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

__all__ = ["setup_logging"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    log_file: Path, level: str = "INFO", max_bytes: int = 1_000_000, backup_count: int = 3
) -> logging.Logger:
    """Attach a rotating file handler to the package logger. Safe to call twice."""
    logger = logging.getLogger("habitual")
    logger.setLevel(getattr(logging, level, logging.INFO))
    target = os.path.abspath(log_file)
    for handler in logger.handlers:
        if isinstance(handler, RotatingFileHandler) and handler.baseFilename == target:
            return logger
    log_file.parent.mkdir(exist_ok=True, parents=True)
    handler = RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
