# civic_scout/errors.py
"""
Exception taxonomy for CivicScout.

Network and HTTP failures are not exceptions: the fetcher returns a
:class:`~civic_scout.crawler.fetcher.FetchError` value instead.
"""
from __future__ import annotations


class CivicScoutError(Exception):
    """Base class for all project errors."""


class ParseError(CivicScoutError):
    """Fetched markup could not be parsed; the page is dropped, not failed."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url


class PersistError(CivicScoutError):
    """A snapshot or report could not be written.

    ``fatal`` marks resource exhaustion (disk full, quota exceeded) which
    aborts the session; every other write failure is retried at the next
    save interval.
    """

    def __init__(self, path: str, message: str, *, fatal: bool = False) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.fatal = fatal


__all__ = ["CivicScoutError", "ParseError", "PersistError"]
