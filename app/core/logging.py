import logging
import sys

from app.core.config import get_settings

settings = get_settings()

LOGGER_NAME = "family_tree_api"


def setup_logging() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    level = settings.log_level.upper()
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


logger = setup_logging()
