# File: civic_scout/report/__init__.py
"""civic_scout.report: snapshot persistence and summary reports (JSON, CSV and HTML)."""

from __future__ import annotations

from civic_scout.report.csv_report import render_category_csv, render_pages_csv
from civic_scout.report.html_report import render_html
from civic_scout.report.json_report import render_json, write_json_atomic, write_text_atomic
from civic_scout.report.persister import (
    JsonFilePersister,
    MemoryPersister,
    ProgressPersister,
    category_slug,
)

__all__ = [
    "JsonFilePersister",
    "MemoryPersister",
    "ProgressPersister",
    "category_slug",
    "render_category_csv",
    "render_html",
    "render_json",
    "render_pages_csv",
    "write_json_atomic",
    "write_text_atomic",
]
