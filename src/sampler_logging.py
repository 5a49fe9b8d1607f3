"""Loggers for the samplers: one stream handler per name, timestamped records."""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str, level: str = "info") -> logging.Logger:
    """
    Logger used by the samplers and the chain runner.

    Run start and finish are logged at INFO, early stops at WARNING and
    numeric failures at ERROR. A handler is attached only when neither the
    logger nor its ancestors already have one, so an application's logging
    setup takes precedence.
    """
    logger = logging.getLogger(name)
    if not logger.hasHandlers():
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
