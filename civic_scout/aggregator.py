# File: civic_scout/aggregator.py
"""civic_scout.aggregator: builds the final summary report of a crawl session."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, TypedDict

from civic_scout.models import CrawlResult, CrawlStats, ExtractedData
from civic_scout.quality import quality_tier, structure_score

DATA_RICH_LIMIT = 20
HIGH_QUALITY = 0.8


class TopResult(TypedDict):
    """One entry in the best-pages list."""

    url: str
    title: str
    category: str
    data_type: str
    quality: float


class DataRichPage(TypedDict):
    url: str
    title: str
    category: str
    extracted_data_types: List[str]
    data_point_count: int


class CategoryAnalysis(TypedDict):
    """Share and mean quality of one category among the results."""

    category: str
    count: int
    percentage: int
    average_quality: float


class ErrorEntry(TypedDict):
    url: str
    reason: str
    detail: str


@dataclass(slots=True)
class SummaryReport:
    """Final summary of a crawl: counters, breakdowns, best pages, error list."""

    total_urls: int = 0
    processed_urls: int = 0
    failed_urls: int = 0
    skipped_urls: int = 0
    total_results: int = 0
    success_rate: float = 0.0
    total_content_kb: int = 0
    average_quality: float = 0.0
    data_type_breakdown: Dict[str, int] = field(default_factory=dict)
    category_breakdown: Dict[str, int] = field(default_factory=dict)
    tier_breakdown: Dict[str, int] = field(default_factory=dict)
    category_analysis: List[CategoryAnalysis] = field(default_factory=list)
    top_results: List[TopResult] = field(default_factory=list)
    data_rich_pages: List[DataRichPage] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)
    errors: List[ErrorEntry] = field(default_factory=list)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def json(self, *, pretty: bool = False) -> str:
        """JSON representation of the report."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def top_results(results: Sequence[CrawlResult], n: int) -> List[CrawlResult]:
    """Best *n* by quality; ``sorted`` is stable so ties keep discovery order."""
    return sorted(results, key=lambda r: r.quality, reverse=True)[:n]


def _tiers(results: Sequence[CrawlResult]) -> Dict[str, int]:
    tiers = {"excellent": 0, "good": 0, "average": 0, "poor": 0}
    for r in results:
        tiers[quality_tier(structure_score(r.metadata, r.extracted_data, r.title))] += 1
    return tiers


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def extracted_kinds(extracted: ExtractedData) -> List[str]:
    """Names of the non-empty structured data lists (tables, dates, ...)."""
    return [
        name
        for name, values in (
            ("tables", extracted.tables),
            ("dates", extracted.dates),
            ("amounts", extracted.amounts),
            ("contacts", extracted.contacts),
        )
        if values
    ]


def data_rich_pages(results: Sequence[CrawlResult], n: int = DATA_RICH_LIMIT) -> List[DataRichPage]:
    """Pages with structured data, most kinds first; ties keep discovery order."""
    rich = [(r, extracted_kinds(r.extracted_data)) for r in results]
    rich = [item for item in rich if item[1]]
    rich.sort(key=lambda item: len(item[1]), reverse=True)
    return [
        {
            "url": r.url,
            "title": r.title,
            "category": r.category,
            "extracted_data_types": kinds,
            "data_point_count": len(kinds),
        }
        for r, kinds in rich[:n]
    ]


def category_analysis(results: Sequence[CrawlResult]) -> List[CategoryAnalysis]:
    """Per category, in order of first appearance: count, share in percent, mean quality."""
    grouped: Dict[str, List[float]] = {}
    for r in results:
        grouped.setdefault(r.category, []).append(r.quality)
    return [
        {
            "category": category,
            "count": len(scores),
            "percentage": _percent(len(scores), len(results)),
            "average_quality": round(sum(scores) / len(scores), 4),
        }
        for category, scores in grouped.items()
    ]


def insights(results: Sequence[CrawlResult], categories: Sequence[CategoryAnalysis]) -> List[str]:
    """Short human-readable observations about the result set."""
    total = len(results)
    high = sum(1 for r in results if r.quality > HIGH_QUALITY)
    structured = sum(1 for r in results if extracted_kinds(r.extracted_data))
    lines = [
        f"Collected {total} pages across {len(categories)} categories",
        f"{_percent(high, total)}% of pages are high-quality (80%+ score)",
    ]
    if categories:
        top = max(categories, key=lambda c: c["count"])
        lines.append(f'Most content found in "{top["category"]}" category ({top["count"]} pages)')
    lines.append(f"{_percent(structured, total)}% of pages contain structured data")
    return lines


def duration_seconds(start_time: Optional[str], end_time: Optional[str]) -> float:
    """Seconds between two ISO-8601 timestamps; 0.0 while the crawl is running."""
    if not start_time or not end_time:
        return 0.0
    elapsed = datetime.fromisoformat(end_time) - datetime.fromisoformat(start_time)
    return round(max(elapsed.total_seconds(), 0.0), 1)


def build_summary(results: Sequence[CrawlResult], stats: CrawlStats, top_n: int = 10) -> SummaryReport:
    """Collect every part of the report from the result set and the stats."""
    processed = stats.processed_urls
    success_rate = round(len(results) / processed * 100, 1) if processed else 0.0
    categories = category_analysis(results)
    return SummaryReport(
        total_urls=stats.total_urls,
        processed_urls=processed,
        failed_urls=stats.failed_urls,
        skipped_urls=stats.skipped_urls,
        total_results=len(results),
        success_rate=success_rate,
        total_content_kb=round(stats.total_content / 1024),
        average_quality=round(stats.average_quality, 4),
        data_type_breakdown=dict(stats.data_types),
        category_breakdown=dict(stats.categories),
        tier_breakdown=_tiers(results),
        category_analysis=categories,
        top_results=[
            {
                "url": r.url,
                "title": r.title,
                "category": r.category,
                "data_type": r.data_type.value,
                "quality": r.quality,
            }
            for r in top_results(results, top_n)
        ],
        data_rich_pages=data_rich_pages(results),
        insights=insights(results, categories),
        errors=[
            {"url": e.url, "reason": e.reason, "detail": e.detail} for e in stats.errors
        ],
        start_time=stats.start_time,
        end_time=stats.end_time,
        duration_seconds=duration_seconds(stats.start_time, stats.end_time),
    )


__all__ = [
    "DATA_RICH_LIMIT",
    "SummaryReport",
    "build_summary",
    "category_analysis",
    "data_rich_pages",
    "duration_seconds",
    "extracted_kinds",
    "insights",
    "top_results",
]
