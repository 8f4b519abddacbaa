# File: civic_scout/report/csv_report.py
"""Spreadsheet-friendly CSV exports of a finished crawl."""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Iterable, List, Sequence

from civic_scout.aggregator import CategoryAnalysis
from civic_scout.models import CrawlResult
from civic_scout.report.json_report import write_text_atomic

PAGES_HEADER = [
    "URL",
    "Title",
    "Category",
    "Data Type",
    "Quality Score",
    "Content Length",
    "Word Count",
    "Links",
    "Tables",
    "Forms",
    "Crawled At",
]
CATEGORY_HEADER = ["Category", "Page Count", "Percentage", "Average Quality"]


def _to_csv(header: List[str], rows: Iterable[Sequence[object]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def render_pages_csv(results: Sequence[CrawlResult], output_path: Path | str) -> Path:
    """One row per result; quality as a whole percentage."""
    rows = (
        [
            r.url,
            r.title,
            r.category,
            r.data_type.value,
            round(r.quality * 100),
            r.metadata.content_length,
            r.metadata.word_count,
            r.metadata.link_count,
            r.metadata.table_count,
            r.metadata.form_count,
            r.metadata.fetched_at,
        ]
        for r in results
    )
    return write_text_atomic(_to_csv(PAGES_HEADER, rows), output_path)


def render_category_csv(categories: Sequence[CategoryAnalysis], output_path: Path | str) -> Path:
    """One row per category of the summary's category analysis."""
    rows = (
        [c["category"], c["count"], c["percentage"], round(c["average_quality"] * 100)]
        for c in categories
    )
    return write_text_atomic(_to_csv(CATEGORY_HEADER, rows), output_path)


__all__ = ["CATEGORY_HEADER", "PAGES_HEADER", "render_category_csv", "render_pages_csv"]
