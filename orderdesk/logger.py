import logging
import sys

from orderdesk.config import settings


def setup_logger(level: str | None = None) -> logging.Logger:
    logger = logging.getLogger("orderdesk")
    logger.setLevel((level or settings.LOG_LEVEL).upper())

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)

    return logger
