# File: civic_scout/engine.py
"""civic_scout.engine: orchestration layer that runs a crawl session and handles interrupts."""

from __future__ import annotations

import asyncio
import signal
from typing import Optional

from civic_scout.aggregator import SummaryReport
from civic_scout.config import CrawlerConfig, load_config
from civic_scout.crawler.session import CrawlSession, SessionState
from civic_scout.logger import logger
from civic_scout.report.persister import JsonFilePersister, ProgressPersister

__all__ = ["Engine", "start_crawl", "default_persister"]


def default_persister(config: CrawlerConfig, html_report: bool = False) -> JsonFilePersister:
    """JSON snapshots under ``config.output_dir``."""
    return JsonFilePersister(config.output_dir, top_n=config.top_n, html_report=html_report)


def _install_signal_handlers(session: CrawlSession) -> list[signal.Signals]:
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, session.cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Windows / non-main thread: fall back to KeyboardInterrupt handling
            continue
    return installed


async def start_crawl(
    cfg: CrawlerConfig,
    persister: Optional[ProgressPersister] = None,
    *,
    handle_signals: bool = True,
) -> CrawlSession:
    """
    Run one crawl session to completion (or interruption) and return it.

    Parameters
    ----------
    cfg : CrawlerConfig
        Immutable run configuration.
    persister : ProgressPersister, optional
        Where snapshots go; defaults to JSON files under ``cfg.output_dir``.
    handle_signals : bool
        Turn SIGINT/SIGTERM into a graceful stop with a final snapshot.
    """
    session = CrawlSession(cfg, persister or default_persister(cfg))
    installed: list[signal.Signals] = []
    if handle_signals:
        installed = _install_signal_handlers(session)
    try:
        await session.run()
    finally:
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)
    return session


class Engine:
    """Facade for the CLI and tests: load config, run a crawl, expose the outcome."""

    @staticmethod
    def load_config(path: Optional[str]) -> CrawlerConfig:
        """Load config from YAML/JSON (``configs/default.yaml`` when *path* is None)."""
        return load_config(path)

    def __init__(self, config: CrawlerConfig, persister: Optional[ProgressPersister] = None) -> None:
        self.config = config
        self.persister = persister
        self.session: Optional[CrawlSession] = None

    def run(self) -> SummaryReport:
        """Run the crawl synchronously and return its summary report."""
        logger.info("Starting crawl…")
        try:
            self.session = asyncio.run(start_crawl(self.config, self.persister))
        except Exception as exc:
            logger.error("Crawl failed: %s", exc)
            raise
        if self.session.state is SessionState.ABORTED:
            logger.warning("Crawl aborted; partial results saved")
        if self.session.report is None:
            raise RuntimeError("Crawl finished without a summary report")
        return self.session.report
