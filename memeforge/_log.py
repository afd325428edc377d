"""Logging for memeforge.

Every module logs through a child of the ``memeforge`` logger. Records are
written to stderr as ``[tag] message``, where the tag is the logger name
without the package prefix; warnings and errors also name their level.
"""

from __future__ import annotations

import logging
import os
import sys
import threading

_ROOT = "memeforge"
_LEVEL_ENV = "MEMEFORGE_LOG_LEVEL"

_lock = threading.Lock()


class _TagFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        tag = record.name.removeprefix(f"{_ROOT}.")
        message = record.getMessage()
        if record.levelno >= logging.WARNING:
            line = f"[{tag}] {record.levelname.lower()}: {message}"
        else:
            line = f"[{tag}] {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _base_level() -> int:
    name = os.environ.get(_LEVEL_ENV, "").strip().upper()
    return logging.getLevelNamesMapping().get(name, logging.WARNING)


def _own_handler(logger: logging.Logger) -> logging.Handler | None:
    for handler in logger.handlers:
        if isinstance(handler.formatter, _TagFormatter):
            return handler
    return None


def setup_logging(verbose: bool = False) -> None:
    """Attach the stderr handler to the ``memeforge`` logger once.

    The level is DEBUG when *verbose*, otherwise ``MEMEFORGE_LOG_LEVEL`` or
    WARNING. Repeat calls add no handlers, but ``verbose=True`` still lowers
    the level of an already configured logger.
    """
    with _lock:
        logger = logging.getLogger(_ROOT)
        if _own_handler(logger) is not None:
            if verbose:
                logger.setLevel(logging.DEBUG)
            return
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(_TagFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG if verbose else _base_level())
        logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Return the ``memeforge.<name>`` logger, configuring output on first use."""
    setup_logging()
    return logging.getLogger(f"{_ROOT}.{name}")
