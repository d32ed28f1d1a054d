import logging

from schooldesk.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure the package logger once and return it."""
    logger = logging.getLogger("schooldesk")
    logger.setLevel((level or settings.LOG_LEVEL).upper())

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console_handler)

    return logger
