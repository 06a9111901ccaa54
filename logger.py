"""Logging for the reminder bot.

One named logger shared by every module via `from logger import logger`.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from config import LOG_DIR, LOG_LEVEL

LOGGER_NAME = "reminder_bot"


def setup_logging(log_dir: Path = LOG_DIR, level: str = LOG_LEVEL) -> logging.Logger:
    """Attach a dated file handler, plus a console handler on a terminal.

    Args:
        log_dir: Directory for reminders-YYYY-MM-DD.log files
        level: Level name such as "INFO" or "DEBUG"

    Returns:
        The configured logger (handlers from earlier calls are replaced)
    """
    bot_logger = logging.getLogger(LOGGER_NAME)
    bot_logger.setLevel(level)

    for handler in list(bot_logger.handlers):
        bot_logger.removeHandler(handler)
        handler.close()

    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(
        log_dir / f"reminders-{datetime.now():%Y-%m-%d}.log",
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s [%(module)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    bot_logger.addHandler(file_handler)

    if sys.stdout is not None and sys.stdout.isatty():
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s", datefmt="%H:%M:%S"))
        bot_logger.addHandler(console)

    return bot_logger


logger = setup_logging()
