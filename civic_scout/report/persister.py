# civic_scout/report/persister.py
"""
Progress persistence strategies.

A crawl session receives one persister at construction and calls
:meth:`snapshot` every ``save_interval`` results and :meth:`final_report`
once at the end.
"""
from __future__ import annotations

import copy
import re
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from civic_scout.aggregator import SummaryReport, build_summary
from civic_scout.logger import get_logger
from civic_scout.models import CrawlResult, CrawlStats
from civic_scout.report.csv_report import render_category_csv, render_pages_csv
from civic_scout.report.html_report import render_html
from civic_scout.report.json_report import render_json, write_json_atomic

log = get_logger("persister")

RAW_DIR = "raw-data"
REPORTS_DIR = "reports"
DATASET_FILE = "dataset.json"
STATS_FILE = "crawl-stats.json"
SUMMARY_FILE = "summary.json"
SUMMARY_HTML_FILE = "summary.html"
PAGES_CSV_FILE = "pages-overview.csv"
CATEGORY_CSV_FILE = "category-summary.csv"


def category_slug(category: str) -> str:
    """File-name slug for a category label ("Planning & Development" → planning-development)."""
    slug = re.sub(r"[^a-z0-9]+", "-", category.lower()).strip("-")
    return slug or "uncategorised"


class ProgressPersister(Protocol):
    """Strategy interface for snapshotting and reporting."""

    def snapshot(self, results: Sequence[CrawlResult], stats: CrawlStats) -> None: ...

    def final_report(self, results: Sequence[CrawlResult], stats: CrawlStats) -> SummaryReport: ...


class JsonFilePersister:
    """
    Writes snapshots under *output_dir*::

        raw-data/dataset.json        all results, in discovery order
        raw-data/<category>.json     results partitioned by category
        crawl-stats.json             running CrawlStats
        reports/summary.json         final SummaryReport
        reports/pages-overview.csv   one row per result
        reports/category-summary.csv one row per category
        reports/summary.html         optional Jinja2 rendering
    """

    def __init__(self, output_dir: Path | str, top_n: int = 10, html_report: bool = False) -> None:
        self.output_dir = Path(output_dir)
        self.top_n = top_n
        self.html_report = html_report

    @property
    def dataset_path(self) -> Path:
        return self.output_dir / RAW_DIR / DATASET_FILE

    @property
    def stats_path(self) -> Path:
        return self.output_dir / STATS_FILE

    @property
    def summary_path(self) -> Path:
        return self.output_dir / REPORTS_DIR / SUMMARY_FILE

    def snapshot(self, results: Sequence[CrawlResult], stats: CrawlStats) -> None:
        """Overwrite the dataset, stats and per-category files."""
        records = [r.to_dict() for r in results]
        write_json_atomic(records, self.dataset_path)
        write_json_atomic(stats.to_dict(), self.stats_path)

        by_category: Dict[str, List[dict]] = {}
        for result, record in zip(results, records):
            by_category.setdefault(result.category, []).append(record)
        for category, items in by_category.items():
            write_json_atomic(items, self.output_dir / RAW_DIR / f"{category_slug(category)}.json")
        log.debug("Snapshot written: %d results to %s", len(records), self.output_dir)

    def final_report(self, results: Sequence[CrawlResult], stats: CrawlStats) -> SummaryReport:
        report = build_summary(results, stats, self.top_n)
        render_json(report, self.summary_path)
        reports = self.output_dir / REPORTS_DIR
        render_pages_csv(results, reports / PAGES_CSV_FILE)
        render_category_csv(report.category_analysis, reports / CATEGORY_CSV_FILE)
        if self.html_report:
            render_html(report, reports / SUMMARY_HTML_FILE)
        log.info("Summary report saved to %s", self.summary_path)
        return report


class MemoryPersister:
    """Keeps every snapshot in memory; useful for embedding and tests."""

    def __init__(self, top_n: int = 10) -> None:
        self.top_n = top_n
        self.snapshots: List[Tuple[List[CrawlResult], CrawlStats]] = []
        self.report: Optional[SummaryReport] = None

    def snapshot(self, results: Sequence[CrawlResult], stats: CrawlStats) -> None:
        self.snapshots.append((list(results), copy.deepcopy(stats)))

    def final_report(self, results: Sequence[CrawlResult], stats: CrawlStats) -> SummaryReport:
        self.report = build_summary(results, stats, self.top_n)
        return self.report


__all__ = [
    "JsonFilePersister",
    "MemoryPersister",
    "ProgressPersister",
    "category_slug",
]
