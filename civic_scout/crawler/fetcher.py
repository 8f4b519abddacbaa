# civic_scout/crawler/fetcher.py
"""
Fetcher module: one HTTP GET per call with retry/backoff and timeout.

Failures come back as :class:`FetchError` values so callers never have to
inspect aiohttp exception types.
"""
from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout

from civic_scout.config import CrawlerConfig
from civic_scout.logger import get_logger

log = get_logger("fetcher")

RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)
_TEXT_TYPES = ("html", "xml", "text/", "json")


class FetchErrorReason(str, Enum):
    TIMEOUT = "timeout"
    NETWORK = "network"
    HTTP_STATUS = "http_status"


@dataclass(slots=True, frozen=True)
class FetchedPage:
    """Body and content type of a successful response."""

    url: str
    content: str
    content_type: str
    status: int = 200

    @property
    def is_html(self) -> bool:
        return "html" in self.content_type


@dataclass(slots=True, frozen=True)
class FetchError:
    """Typed fetch failure returned after retries are exhausted."""

    url: str
    reason: FetchErrorReason
    message: str
    status: Optional[int] = None
    attempts: int = 1


class _RetryableStatus(Exception):
    def __init__(self, status: int) -> None:
        super().__init__(f"retryable status {status}")
        self.status = status


class Fetcher:
    """HTTP fetcher with rotating User-Agent, retries/backoff and timeout."""

    def __init__(
        self,
        config: CrawlerConfig,
        session: Optional[ClientSession] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None
        self._rng = rng or random.Random()

    async def __aenter__(self) -> Fetcher:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.timeout),
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": self._rng.choice(self.config.user_agents),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": self.config.accept_language,
            "DNT": "1",
        }

    async def _get_once(self, url: str) -> FetchedPage | FetchError:
        if not self.session:
            raise RuntimeError("Session not initialized")
        async with self.session.get(url, headers=self._headers(), allow_redirects=True) as resp:
            status = resp.status
            if status in RETRY_STATUS:
                raise _RetryableStatus(status)
            if status >= 400:
                return FetchError(
                    url, FetchErrorReason.HTTP_STATUS, f"HTTP {status}: {resp.reason}", status
                )
            ctype = resp.headers.get("Content-Type", "text/html").split(";", 1)[0].strip().lower()
            if any(t in ctype for t in _TEXT_TYPES):
                text = await resp.text(errors="replace")
            else:
                # binary documents: keep the type, skip the body
                text = ""
            return FetchedPage(str(resp.url), text, ctype, status)

    async def fetch(self, url: str) -> FetchedPage | FetchError:
        """
        GET *url*, retrying timeouts, connection errors, 5xx and 429 up to
        ``max_retries`` extra times with linear backoff. Other 4xx fail at once.
        """
        attempts = 0
        while True:
            attempts += 1
            try:
                result = await self._get_once(url)
                if isinstance(result, FetchError):
                    return FetchError(result.url, result.reason, result.message, result.status, attempts)
                return result
            except asyncio.TimeoutError:
                failure = FetchError(url, FetchErrorReason.TIMEOUT, f"timed out after {self.config.timeout}s")
            except _RetryableStatus as exc:
                failure = FetchError(url, FetchErrorReason.HTTP_STATUS, f"HTTP {exc.status}", exc.status)
            except ClientError as exc:
                failure = FetchError(url, FetchErrorReason.NETWORK, str(exc) or type(exc).__name__)

            if attempts > self.config.max_retries:
                return FetchError(failure.url, failure.reason, failure.message, failure.status, attempts)
            backoff = self.config.retry_delay * attempts
            log.debug(
                "Retry %d/%d for %s after %.2f s (%s)",
                attempts, self.config.max_retries, url, backoff, failure.message,
            )
            await asyncio.sleep(backoff)

    async def fetch_text(self, url: str) -> Optional[str]:
        """Single attempt, body on 200 else *None*. Used for robots.txt."""
        if not self.session:
            raise RuntimeError("Session not initialized")
        try:
            async with self.session.get(url, headers=self._headers()) as resp:
                if resp.status == 200:
                    return await resp.text(errors="replace")
                log.debug("%s -> HTTP %s", url, resp.status)
                return None
        except (ClientError, asyncio.TimeoutError) as exc:
            log.debug("Could not load %s: %s", url, exc)
            return None


__all__ = ["FetchError", "FetchErrorReason", "FetchedPage", "Fetcher", "RETRY_STATUS"]
