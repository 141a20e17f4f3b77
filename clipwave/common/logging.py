# clipwave/common/logging.py
from __future__ import annotations

import logging


def get_logger(name: str = "clipwave", level: int | str | None = None) -> logging.Logger:
    """
    Return a named logger for the engine.
    If neither the root nor this logger has handlers, we add a basicConfig once,
    so hosts that configure logging themselves are left alone.
    """
    logger = logging.getLogger(name)
    if not logging.getLogger().handlers and not logger.handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if level is not None:
        logger.setLevel(level)
    return logger
