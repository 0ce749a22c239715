"""
log.py
Logging setup: one stderr handler, messages tagged [error]/[warn]/[info]/[debug].
"""

from __future__ import annotations
import logging
import sys

_TAGS = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


class TagFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        tag = _TAGS.get(record.levelno, record.levelname.lower())
        msg = f"[{tag}] {record.getMessage()}"
        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)
        return msg


def level_for(base: str, debug: int = 0, verbose: int = 0) -> int:
    """-d wins over -v; either only ever lowers the configured level."""
    level = logging.getLevelName(base.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    if debug:
        return min(level, logging.DEBUG)
    if verbose:
        return min(level, logging.INFO)
    return level


def setup_logging(level: int, stream=None) -> logging.Logger:
    logger = logging.getLogger("raidctl")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(TagFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
