# === FILE: civic_scout/crawler/session.py ===
"""
Crawl session: owns the frontier, fetcher and stats, and drives each URL
through classify → extract → score → cite → persist.
"""
from __future__ import annotations

import asyncio
import random
import time
from enum import Enum
from typing import List, Optional, Tuple

from civic_scout.aggregator import SummaryReport, build_summary
from civic_scout.citation import build_citation
from civic_scout.classifier import classify
from civic_scout.config import CrawlerConfig
from civic_scout.crawler.fetcher import FetchError, Fetcher, FetchedPage
from civic_scout.crawler.frontier import URLFrontier
from civic_scout.crawler.link_extractor import extract_file_links, extract_links
from civic_scout.crawler.politeness import DelayPolicy, DomainThrottle, RandomDelay
from civic_scout.crawler.robots import RobotsCache
from civic_scout.errors import ParseError, PersistError
from civic_scout.logger import get_logger
from civic_scout.models import CrawlResult, CrawlStats, CrawlTarget, PageMetadata, utc_now
from civic_scout.parser.extractor import extract_structured_data
from civic_scout.parser.html_parser import ParsedPage, parse_html
from civic_scout.quality import score_quality
from civic_scout.report.persister import ProgressPersister

__all__ = ("PROCESSING_ERROR", "CrawlSession", "SessionState", "build_result")

log = get_logger("session")

_HEADINGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

# FailedUrl.reason for errors raised inside the per-page pipeline
PROCESSING_ERROR = "processing"


class SessionState(str, Enum):
    SEEDED = "seeded"
    DEQUEUING = "dequeuing"
    FETCHING = "fetching"
    FETCH_FAILED = "fetch_failed"
    FETCHED = "fetched"
    EXTRACTING = "extracting"
    CLASSIFYING = "classifying"
    SCORING = "scoring"
    PERSISTED = "persisted"
    FRONTIER_EXHAUSTED = "frontier_exhausted"
    MAX_URLS_REACHED = "max_urls_reached"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    ABORTED = "aborted"


def _page_metadata(page: ParsedPage, fetched: FetchedPage) -> PageMetadata:
    soup = page.soup
    return PageMetadata(
        content_length=len(fetched.content),
        word_count=len(page.text.split()),
        link_count=len(soup.find_all("a", href=True)),
        image_count=len(soup.find_all("img")),
        table_count=len(soup.find_all("table")),
        form_count=len(soup.find_all("form")),
        heading_count=len(soup.find_all(_HEADINGS)),
        list_count=len(soup.find_all(["ul", "ol", "dl"])),
        fetched_at=utc_now(),
        content_type=fetched.content_type,
        last_modified=page.meta("last-modified"),
        author=page.meta("author"),
        keywords=page.meta("keywords"),
    )


def build_result(
    target: CrawlTarget,
    fetched: FetchedPage,
    page: ParsedPage,
    config: CrawlerConfig,
) -> CrawlResult:
    """Assemble the immutable record for one parsed page."""
    extracted = extract_structured_data(page.soup, target.url)
    label = classify(target.url, page.title, fetched.content)
    quality = score_quality(page.title, page.description, fetched.content, extracted)
    citation = build_citation(
        target.url,
        page.title,
        extract_file_links(page.soup, fetched.url),
        config.government_suffix,
    )
    return CrawlResult(
        url=target.url,
        title=page.title,
        description=page.description,
        content_excerpt=page.text[: config.excerpt_limit],
        data_type=label.data_type,
        category=label.category,
        metadata=_page_metadata(page, fetched),
        extracted_data=extracted,
        quality=quality,
        citation=citation,
        depth=target.depth,
    )


class CrawlSession:
    """One crawl run. Configuration is fixed at construction; state is private."""

    def __init__(
        self,
        config: CrawlerConfig,
        persister: ProgressPersister,
        fetcher: Optional[Fetcher] = None,
        delay_policy: Optional[DelayPolicy] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self.persister = persister
        self._rng = rng or random.Random()
        self._fetcher = fetcher
        self.frontier = URLFrontier(
            config.allowed_domains,
            max_urls=config.max_urls,
            max_depth=config.max_depth,
            discovery_cap=config.discovery_cap,
        )
        self.throttle = DomainThrottle(
            delay_policy or RandomDelay(config.base_delay, config.max_delay, self._rng)
        )
        self.results: List[CrawlResult] = []
        self.stats = CrawlStats()
        self.state = SessionState.SEEDED
        self.report: Optional[SummaryReport] = None
        self.fatal_error: Optional[PersistError] = None
        self._robots: Optional[RobotsCache] = None
        self._stop = asyncio.Event()
        self._idle: Optional[asyncio.Condition] = None
        self._in_flight = 0

        self.stats.total_urls = len(self.frontier.enqueue_seeds(config.seeds))

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def cancel(self) -> None:
        """Ask workers to stop after their current URL and finalize as ABORTED."""
        if not self._stop.is_set():
            log.warning("Interrupt received, finishing in-flight work and saving progress")
        self._stop.set()

    async def run(self) -> SummaryReport:
        """Crawl until the frontier is exhausted, the URL budget is spent or cancelled."""
        log.info(
            "Crawl started: %d seed(s), max %d URL(s), domains %s",
            self.stats.total_urls, self.config.max_urls, ", ".join(self.frontier.allowed_domains),
        )
        start = time.monotonic()
        self._idle = asyncio.Condition()
        try:
            if self._fetcher is None:
                async with Fetcher(self.config, rng=self._rng) as fetcher:
                    self._fetcher = fetcher
                    await self._crawl()
            else:
                await self._crawl()
        except asyncio.CancelledError:
            self._stop.set()
            await self._finalize(aborted=True)
            raise
        except Exception as exc:
            log.critical("Crawl stopped by unexpected error: %s", exc)
            self._stop.set()
            await self._finalize(aborted=True)
            raise
        report = await self._finalize(aborted=self._stop.is_set())
        duration = time.monotonic() - start
        log.info(
            "Finished: %d result(s) from %d URL(s) in %.2f s, %d failed",
            len(self.results), self.stats.processed_urls, duration, self.stats.failed_urls,
        )
        return report

    # ------------------------------------------------------------------ #
    # Crawl loop                                                         #
    # ------------------------------------------------------------------ #

    def _advance(self, state: SessionState, url: str = "") -> None:
        self.state = state
        log.debug("[%s] %s", state.value, url)

    async def _crawl(self) -> None:
        if self.config.respect_robots and self._fetcher is not None:
            ua = self.config.user_agents[0]
            self._robots = RobotsCache(self._fetcher.fetch_text, ua)
        workers = [asyncio.create_task(self._worker()) for _ in range(self.config.concurrency)]
        try:
            await asyncio.gather(*workers)
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
        if not self._stop.is_set():
            if self.frontier.ceiling_reached:
                self._advance(SessionState.MAX_URLS_REACHED)
            else:
                self._advance(SessionState.FRONTIER_EXHAUSTED)

    def _idle_done(self) -> bool:
        return self._stop.is_set() or self._in_flight == 0 or self.frontier.has_pending()

    async def _worker(self) -> None:
        if self._idle is None:
            raise RuntimeError("Session not running")
        while not self._stop.is_set():
            self._advance(SessionState.DEQUEUING)
            target = self.frontier.dequeue()
            if target is None:
                if self._in_flight == 0 or self.frontier.ceiling_reached:
                    return
                # another worker may still discover links
                async with self._idle:
                    await self._idle.wait_for(self._idle_done)
                continue
            self._in_flight += 1
            try:
                await self._process(target)
            finally:
                self._in_flight -= 1
                async with self._idle:
                    self._idle.notify_all()

    async def _process(self, target: CrawlTarget) -> None:
        if self._fetcher is None:
            raise RuntimeError("Fetcher not initialized")
        try:
            outcome = await self._pipeline(target, self._fetcher)
        except Exception as exc:
            # any other per-page error is recorded and the crawl goes on
            self._advance(SessionState.FETCH_FAILED, target.url)
            self.stats.record_failure(target.url, PROCESSING_ERROR, f"{type(exc).__name__}: {exc}")
            log.error("Unexpected error on %s: %s", target.url, exc, exc_info=True)
            return
        if outcome is None:
            return

        result, links = outcome
        self.results.append(result)
        self.stats.record(result)
        new = self.frontier.discover(links, target.url, target.depth)
        self.stats.total_urls += len(new)
        self._advance(SessionState.PERSISTED, target.url)

        if len(self.results) % self.config.save_interval == 0:
            self._save()
            log.info(
                "Progress saved: %d page(s), avg quality %d%%",
                len(self.results), round(self.stats.average_quality * 100),
            )

    async def _pipeline(
        self, target: CrawlTarget, fetcher: Fetcher
    ) -> Optional[Tuple[CrawlResult, List[str]]]:
        """Fetch, parse and score one URL; *None* when the page is skipped or failed."""
        if self._robots is not None and not await self._robots.allowed(target.url):
            self.stats.skipped_urls += 1
            log.info("Disallowed by robots.txt: %s", target.url)
            return None

        await self.throttle.wait(target.origin_domain)
        self._advance(SessionState.FETCHING, target.url)
        log.info("Processing (%d/%d): %s", self.frontier.dequeued, self.config.max_urls, target.url)
        fetched = await fetcher.fetch(target.url)
        self.stats.processed_urls += 1

        if isinstance(fetched, FetchError):
            self._advance(SessionState.FETCH_FAILED, target.url)
            self.stats.record_failure(target.url, fetched.reason.value, fetched.message)
            log.warning(
                "Failed %s after %d attempt(s): %s", target.url, fetched.attempts, fetched.message
            )
            return None

        self._advance(SessionState.FETCHED, target.url)
        if len(fetched.content) < self.config.min_content_length:
            self.stats.skipped_urls += 1
            log.debug("Dropped %s: %d chars of content", target.url, len(fetched.content))
            return None

        self._advance(SessionState.EXTRACTING, target.url)
        try:
            page = parse_html(fetched.content, target.url)
        except ParseError as exc:
            self.stats.skipped_urls += 1
            log.debug("Dropped unparsable page %s", exc)
            return None

        self._advance(SessionState.CLASSIFYING, target.url)
        self._advance(SessionState.SCORING, target.url)
        result = build_result(target, fetched, page, self.config)
        return result, extract_links(page.soup, fetched.url)

    # ------------------------------------------------------------------ #
    # Persistence                                                        #
    # ------------------------------------------------------------------ #

    def _save(self) -> bool:
        try:
            self.persister.snapshot(self.results, self.stats)
            return True
        except PersistError as exc:
            if exc.fatal:
                log.critical("Snapshot failed, storage exhausted: %s", exc)
                self.fatal_error = exc
                self.cancel()
            else:
                log.error("Snapshot failed, will retry at next interval: %s", exc)
            return False

    async def _finalize(self, *, aborted: bool) -> SummaryReport:
        self._advance(SessionState.FINALIZING)
        self.stats.finish()
        self._save()
        try:
            self.report = self.persister.final_report(self.results, self.stats)
        except PersistError as exc:
            log.error("Summary report not written: %s", exc)
            self.report = build_summary(self.results, self.stats, self.config.top_n)
        self._advance(SessionState.ABORTED if aborted else SessionState.COMPLETED)
        return self.report
