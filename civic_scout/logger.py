# === FILE: civic_scout/logger.py ===
"""Logging setup for **CivicScout**.

All project loggers hang off one root, ``CivicScout``; components take a
child with :func:`get_logger` (``CivicScout.session``, ``CivicScout.fetcher``
and so on), so one call to :func:`configure` re-targets every one of them::

    from civic_scout.logger import get_logger
    log = get_logger("session")
    log.info("Processing (%d/%d): %s", n, limit, url)

Console output goes to stdout at the requested level. An optional log file
rotates at 5 MB and always records DEBUG, so per-URL state transitions are
available after a crawl even when the console shows INFO only.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Union

ROOT_LOGGER: Final[str] = "CivicScout"
DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

MAX_LOG_SIZE_BYTES: Final[int] = 5 * 1024 * 1024
BACKUP_COUNT: Final[int] = 3

_LevelT = Union[int, str]


def _console(level: _LevelT, fmt: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _rotating_file(path: Path, fmt: str) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=MAX_LOG_SIZE_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """(Re)configure the ``CivicScout`` logger tree.

    Parameters
    ----------
    level
        Console level, numeric or by name (``"DEBUG"``, ``"INFO"``...).
    log_file
        Optional rotating log file; it receives DEBUG and above.
    log_format
        :class:`logging.Formatter` format string for every handler.
    replace_handlers
        Close and drop existing handlers first. ``False`` appends.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if replace_handlers:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

    root.addHandler(_console(level, log_format))
    if log_file is not None:
        root.addHandler(_rotating_file(Path(log_file), log_format))
        root.setLevel(logging.DEBUG)
    else:
        root.setLevel(level)

    # no propagation to the root logger
    root.propagate = False
    return root


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """CLI entry point: fresh handlers for *level* and an optional file."""
    return configure(level=level, log_file=log_file, log_format=log_format)


def get_logger(component: str) -> logging.Logger:
    """``CivicScout.<component>`` child logger."""
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


logger: logging.Logger = init_logging()

__all__ = ["BACKUP_COUNT", "DEFAULT_FORMAT", "ROOT_LOGGER", "configure", "get_logger", "init_logging", "logger"]
