# civic_scout/models.py
"""
Data models for the CivicScout crawler.

Result records are frozen dataclasses; the extraction caps live on the
records themselves so an over-sized instance cannot be built.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

MAX_TABLES = 3
MAX_TABLE_ROWS = 10
MAX_DATES = 10
MAX_AMOUNTS = 10
MAX_CONTACTS = 5


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class DataType(str, Enum):
    """Technical content type of a crawled page."""

    MEETING = "meeting"
    PLANNING_APPLICATION = "planning_application"
    FINANCIAL_INFO = "financial_info"
    SERVICE_FORM = "service_form"
    DATA_TABLE = "data_table"
    COUNCILLOR = "councillor"
    COUNCIL_PAGE = "council_page"
    GENERAL = "general"


@dataclass(slots=True, frozen=True)
class CrawlTarget:
    """A URL waiting in the frontier."""

    url: str
    key: str
    depth: int
    origin_domain: str


@dataclass(slots=True, frozen=True)
class TableData:
    headers: Tuple[str, ...] = ()
    rows: Tuple[Tuple[str, ...], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", tuple(self.headers))
        object.__setattr__(self, "rows", tuple(tuple(r) for r in self.rows)[:MAX_TABLE_ROWS])

    def to_dict(self) -> Dict[str, Any]:
        return {"headers": list(self.headers), "rows": [list(r) for r in self.rows]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TableData:
        return cls(headers=tuple(data.get("headers", ())), rows=tuple(data.get("rows", ())))


@dataclass(slots=True, frozen=True)
class ExtractedData:
    """Structured facts pulled out of one page, each list capped."""

    tables: Tuple[TableData, ...] = ()
    dates: Tuple[str, ...] = ()
    amounts: Tuple[str, ...] = ()
    contacts: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tables", tuple(self.tables)[:MAX_TABLES])
        object.__setattr__(self, "dates", tuple(self.dates)[:MAX_DATES])
        object.__setattr__(self, "amounts", tuple(self.amounts)[:MAX_AMOUNTS])
        object.__setattr__(self, "contacts", tuple(self.contacts)[:MAX_CONTACTS])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tables": [t.to_dict() for t in self.tables],
            "dates": list(self.dates),
            "amounts": list(self.amounts),
            "contacts": list(self.contacts),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ExtractedData:
        return cls(
            tables=tuple(TableData.from_dict(t) for t in data.get("tables", ())),
            dates=tuple(data.get("dates", ())),
            amounts=tuple(data.get("amounts", ())),
            contacts=tuple(data.get("contacts", ())),
        )


@dataclass(slots=True, frozen=True)
class PageMetadata:
    content_length: int
    word_count: int
    link_count: int
    image_count: int
    table_count: int
    form_count: int
    heading_count: int
    fetched_at: str
    list_count: int = 0
    content_type: str = "text/html"
    last_modified: Optional[str] = None
    author: Optional[str] = None
    keywords: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PageMetadata:
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass(slots=True, frozen=True)
class CitationInfo:
    """Where a result came from, including downloadable documents it links to."""

    source_url: str
    title: str
    file_links: Tuple[str, ...]
    domain: str
    is_government_site: bool
    confidence: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_url": self.source_url,
            "title": self.title,
            "file_links": list(self.file_links),
            "domain": self.domain,
            "is_government_site": self.is_government_site,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CitationInfo:
        return cls(
            source_url=data["source_url"],
            title=data.get("title", ""),
            file_links=tuple(data.get("file_links", ())),
            domain=data.get("domain", ""),
            is_government_site=bool(data.get("is_government_site", False)),
            confidence=data.get("confidence", "medium"),
        )


@dataclass(slots=True, frozen=True)
class CrawlResult:
    """One successfully fetched and processed page. Never mutated."""

    url: str
    title: str
    description: str
    content_excerpt: str
    data_type: DataType
    category: str
    metadata: PageMetadata
    extracted_data: ExtractedData
    quality: float
    citation: CitationInfo
    depth: int = 0

    def __post_init__(self) -> None:
        if not 0.0 <= self.quality <= 1.0:
            raise ValueError(f"quality out of range: {self.quality}")
        object.__setattr__(self, "data_type", DataType(self.data_type))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "content_excerpt": self.content_excerpt,
            "data_type": self.data_type.value,
            "category": self.category,
            "metadata": self.metadata.to_dict(),
            "extracted_data": self.extracted_data.to_dict(),
            "quality": self.quality,
            "citation": self.citation.to_dict(),
            "depth": self.depth,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CrawlResult:
        return cls(
            url=data["url"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            content_excerpt=data.get("content_excerpt", ""),
            data_type=DataType(data.get("data_type", DataType.COUNCIL_PAGE.value)),
            category=data.get("category", "General"),
            metadata=PageMetadata.from_dict(data["metadata"]),
            extracted_data=ExtractedData.from_dict(data.get("extracted_data", {})),
            quality=float(data.get("quality", 0.0)),
            citation=CitationInfo.from_dict(data["citation"]),
            depth=int(data.get("depth", 0)),
        )


@dataclass(slots=True, frozen=True)
class FailedUrl:
    url: str
    reason: str
    detail: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "reason": self.reason, "detail": self.detail}


@dataclass(slots=True)
class CrawlStats:
    """Running aggregate for a session; only the session mutates it."""

    total_urls: int = 0
    processed_urls: int = 0
    failed_urls: int = 0
    skipped_urls: int = 0
    data_types: Dict[str, int] = field(default_factory=dict)
    categories: Dict[str, int] = field(default_factory=dict)
    total_content: int = 0
    average_quality: float = 0.0
    result_count: int = 0
    start_time: str = field(default_factory=utc_now)
    end_time: Optional[str] = None
    errors: List[FailedUrl] = field(default_factory=list)

    def record(self, result: CrawlResult) -> None:
        """Fold one result into the counters and the running mean."""
        dt = result.data_type.value
        self.data_types[dt] = self.data_types.get(dt, 0) + 1
        self.categories[result.category] = self.categories.get(result.category, 0) + 1
        self.total_content += result.metadata.content_length
        self.result_count += 1
        self.average_quality += (result.quality - self.average_quality) / self.result_count

    def record_failure(self, url: str, reason: str, detail: str = "") -> None:
        self.failed_urls += 1
        self.errors.append(FailedUrl(url, reason, detail))

    def finish(self) -> None:
        if self.end_time is None:
            self.end_time = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_urls": self.total_urls,
            "processed_urls": self.processed_urls,
            "failed_urls": self.failed_urls,
            "skipped_urls": self.skipped_urls,
            "data_types": dict(self.data_types),
            "categories": dict(self.categories),
            "total_content": self.total_content,
            "average_quality": self.average_quality,
            "result_count": self.result_count,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "errors": [e.to_dict() for e in self.errors],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CrawlStats:
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__ and k != "errors"}
        stats = cls(**known)
        stats.errors = [FailedUrl(**e) for e in data.get("errors", [])]
        return stats


__all__ = [
    "MAX_TABLES",
    "MAX_TABLE_ROWS",
    "MAX_DATES",
    "MAX_AMOUNTS",
    "MAX_CONTACTS",
    "CitationInfo",
    "CrawlResult",
    "CrawlStats",
    "CrawlTarget",
    "DataType",
    "ExtractedData",
    "FailedUrl",
    "PageMetadata",
    "TableData",
    "utc_now",
]
