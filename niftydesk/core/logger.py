"""Logging infrastructure setup."""

import logging
import os
from pathlib import Path
from typing import Optional


def setup_logger(name: str = "niftydesk", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure and return a logger that writes to a log file and the console.

    Args:
        name (str): The name of the logger.
        log_file (Optional[str]): Path to the log file. Defaults to ``$NIFTYDESK_LOG_FILE``
            or ``output/niftydesk.log``.

    Returns:
        logging.Logger: The configured logger instance.
    """
    log_path = Path(log_file or os.getenv("NIFTYDESK_LOG_FILE", "output/niftydesk.log"))
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)

    # Avoid adding multiple handlers if setup is called multiple times
    if logger.hasHandlers():
        return logger

    logger.setLevel(os.getenv("NIFTYDESK_LOG_LEVEL", "INFO").upper())

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(module)s.%(funcName)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger

# Shared logger instance
logger = setup_logger()
