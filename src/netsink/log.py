"""Logging to STDERR for the sink, the stream loop and the CLI."""

from __future__ import annotations
import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(level)
    return logger


def set_level(level: int) -> None:
    """Adjust every netsink logger at once (used by the CLI --verbose flag)."""
    for name in list(logging.root.manager.loggerDict):
        if "netsink" in name.split("."):
            logging.getLogger(name).setLevel(level)
