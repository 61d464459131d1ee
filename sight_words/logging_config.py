from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(module)s: %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the ``sight_words`` logger tree with a console handler.

    Safe to call more than once; existing handlers are replaced.
    """
    resolved = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger("sight_words")
    logger.setLevel(resolved)
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
