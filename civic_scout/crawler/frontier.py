# civic_scout/crawler/frontier.py
"""
URL frontier: FIFO queue, dedupe set, domain allow-list and size bounds.
"""
from __future__ import annotations

import posixpath
from collections import deque
from typing import Deque, Iterable, List, Optional, Sequence, Set
from urllib.parse import parse_qsl, quote, unquote, urlencode, urljoin, urlparse, urlunparse

from civic_scout.crawler.link_extractor import is_document_url
from civic_scout.logger import get_logger
from civic_scout.models import CrawlTarget

log = get_logger("frontier")


def normalize_url(url: str) -> str:
    """
    Dedupe key for *url*: lower-cased scheme and host, no fragment, no
    trailing slash (the root path stays ``/``), query parameters sorted.
    """
    parsed = urlparse(url.strip())
    scheme = parsed.scheme.lower()
    netloc = parsed.netloc.lower()
    path = unquote(parsed.path or "/")
    norm = posixpath.normpath(path) if path != "/" else "/"
    if not norm.startswith("/"):
        norm = "/" + norm
    if len(norm) > 1:
        norm = norm.rstrip("/") or "/"
    norm = quote(norm, safe="/:@!$&'()*+,;=-._~")
    qs = parse_qsl(parsed.query, keep_blank_values=True)
    qs.sort()
    query = urlencode(qs, doseq=True)
    return urlunparse((scheme, netloc, norm, "", query, ""))


def host_allowed(host: str, allowed_domains: Sequence[str]) -> bool:
    """Host equals an allowed domain or is one of its subdomains."""
    host = host.lower().rstrip(".")
    return any(host == d or host.endswith("." + d) for d in allowed_domains)


class URLFrontier:
    """Queue of crawl targets with dedupe and bounds; owned by one session."""

    def __init__(
        self,
        allowed_domains: Sequence[str],
        max_urls: int,
        max_depth: int,
        discovery_cap: int = 3,
    ) -> None:
        if max_urls < 1:
            raise ValueError("max_urls must be >= 1")
        self.allowed_domains = tuple(d.lower().lstrip(".") for d in allowed_domains)
        self.max_urls = max_urls
        self.max_depth = max_depth
        self.discovery_cap = discovery_cap
        self.visited: Set[str] = set()
        self._queued: Set[str] = set()
        self._queue: Deque[CrawlTarget] = deque()
        self.admitted = 0
        self.dequeued = 0

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def ceiling_reached(self) -> bool:
        return self.dequeued >= self.max_urls

    def has_pending(self) -> bool:
        return bool(self._queue) and not self.ceiling_reached

    def is_exhausted(self) -> bool:
        return not self.has_pending()

    def _admit(self, url: str, depth: int) -> Optional[CrawlTarget]:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            return None
        if not host_allowed(parsed.hostname, self.allowed_domains):
            return None
        key = normalize_url(url)
        if key in self.visited or key in self._queued:
            return None
        target = CrawlTarget(
            url=parsed._replace(fragment="").geturl(),
            key=key,
            depth=depth,
            origin_domain=parsed.hostname.lower(),
        )
        self._queue.append(target)
        self._queued.add(key)
        self.admitted += 1
        return target

    def enqueue_seeds(self, urls: Iterable[str]) -> List[CrawlTarget]:
        """Queue seed URLs at depth 0; off-list seeds are rejected with a warning."""
        added: List[CrawlTarget] = []
        for url in urls:
            target = self._admit(str(url), 0)
            if target is None:
                host = urlparse(str(url)).hostname or ""
                if not host_allowed(host, self.allowed_domains):
                    log.warning("Seed outside allowed domains ignored: %s", url)
                continue
            added.append(target)
        return added

    def discover(self, links: Iterable[str], base_url: str, depth: int) -> List[CrawlTarget]:
        """
        Admit up to ``discovery_cap`` new links found on a page at *depth*.

        Links are resolved against *base_url*. Unparsable links, off-list hosts,
        documents, already visited or queued URLs, and anything past
        ``max_depth`` or the ``max_urls`` budget are dropped silently.
        """
        child_depth = depth + 1
        if child_depth > self.max_depth:
            return []
        admitted: List[CrawlTarget] = []
        for link in links:
            if len(admitted) >= self.discovery_cap or self.admitted >= self.max_urls:
                break
            try:
                absolute = urljoin(base_url, link)
                if is_document_url(absolute):
                    continue
                target = self._admit(absolute, child_depth)
            except ValueError:
                log.debug("Unparsable link on %s: %r", base_url, link)
                continue
            if target is not None:
                admitted.append(target)
        if admitted:
            log.debug("Discovered %d new URL(s) on %s", len(admitted), base_url)
        return admitted

    def dequeue(self) -> Optional[CrawlTarget]:
        """Next target in FIFO order, or *None* when exhausted or at the ceiling."""
        if self.ceiling_reached or not self._queue:
            return None
        target = self._queue.popleft()
        self._queued.discard(target.key)
        self.visited.add(target.key)
        self.dequeued += 1
        return target


__all__ = ["URLFrontier", "host_allowed", "normalize_url"]
