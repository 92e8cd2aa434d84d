"""Logging configuration for the app."""

import logging

LOGGER_NAME = "pronounce"


def setup_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
    logger.addHandler(console_handler)

    # werkzeug logs every SSE poll at INFO
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    return logger
