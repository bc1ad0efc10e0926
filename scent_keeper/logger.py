import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from . import settings


def setup_logger(
    name: Optional[str] = None, log_level: int | str = settings.LOG_LEVEL
) -> logging.Logger:
    """
    Configures a named logger (the CLI passes "scent_keeper", so every module
    logger in the package inherits it). Messages go to stderr, keeping stdout
    for command output, and to a rotating LOG_DIR/backup.log.
    Calling it again sets the logger level and leaves the handlers alone.
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Prevent adding handlers multiple times if logger is already set up
    if logger.handlers:
        return logger

    console_format = logging.Formatter("%(message)s")
    file_format = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # 1. Console Handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

    # 2. File Handler
    settings.LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = settings.LOG_DIR / "backup.log"

    file_handler = RotatingFileHandler(
        log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"  # 5 MB
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(file_format)
    logger.addHandler(file_handler)

    return logger
