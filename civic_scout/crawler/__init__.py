# civic_scout/crawler/__init__.py
"""Frontier, fetcher, politeness and the crawl session."""
from civic_scout.crawler.fetcher import FetchError, FetchErrorReason, FetchedPage, Fetcher
from civic_scout.crawler.frontier import URLFrontier, normalize_url
from civic_scout.crawler.session import CrawlSession, SessionState

__all__ = [
    "CrawlSession",
    "FetchError",
    "FetchErrorReason",
    "FetchedPage",
    "Fetcher",
    "SessionState",
    "URLFrontier",
    "normalize_url",
]
