# civic_scout/parser/extractor.py
"""
Structured data extraction: tables, dates, monetary amounts and contacts.

Every list is bounded by the caps in :mod:`civic_scout.models`, whatever the
size of the source page.
"""
from __future__ import annotations

import re
from typing import Iterable, List

from bs4 import BeautifulSoup
from bs4.element import Tag

from civic_scout.models import (
    MAX_AMOUNTS,
    MAX_CONTACTS,
    MAX_DATES,
    MAX_TABLE_ROWS,
    MAX_TABLES,
    ExtractedData,
    TableData,
)

DATE_RE = re.compile(r"\b\d{1,2}[/\-]\d{1,2}[/\-]\d{4}\b")
AMOUNT_RE = re.compile(r"£\d[\d,]*(?:\.\d+)?")


def _unique(items: Iterable[str], limit: int) -> List[str]:
    """Order-preserving dedupe, stopping at *limit*."""
    out: List[str] = []
    seen: set[str] = set()
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
        if len(out) >= limit:
            break
    return out


def extract_tables(soup: BeautifulSoup) -> List[TableData]:
    """Headers and up to MAX_TABLE_ROWS non-empty rows from the first tables."""
    tables: List[TableData] = []
    for table in soup.find_all("table", limit=MAX_TABLES):
        if not isinstance(table, Tag):
            continue
        headers = [th.get_text(" ", strip=True) for th in table.find_all("th")]
        rows: List[List[str]] = []
        for tr in table.find_all("tr"):
            cells = [td.get_text(" ", strip=True) for td in tr.find_all("td")]
            if not cells:
                continue
            rows.append(cells)
            if len(rows) >= MAX_TABLE_ROWS:
                break
        if headers or rows:
            tables.append(TableData(headers=tuple(headers), rows=tuple(tuple(r) for r in rows)))
    return tables


def extract_dates(text: str) -> List[str]:
    return _unique(DATE_RE.findall(text), MAX_DATES)


def extract_amounts(text: str) -> List[str]:
    return _unique(AMOUNT_RE.findall(text), MAX_AMOUNTS)


def extract_contacts(soup: BeautifulSoup) -> List[str]:
    """E-mail addresses from ``mailto:`` links, query part stripped."""
    addresses: List[str] = []
    for a in soup.find_all("a", href=True):
        href = a.get("href")
        if not isinstance(href, str) or not href.lower().startswith("mailto:"):
            continue
        address = href[len("mailto:"):].split("?", 1)[0].strip()
        if address:
            addresses.append(address)
    return _unique(addresses, MAX_CONTACTS)


def extract_structured_data(soup: BeautifulSoup, url: str = "") -> ExtractedData:
    """Run all extractors over a parsed document."""
    text = soup.get_text(" ")
    return ExtractedData(
        tables=tuple(extract_tables(soup)),
        dates=tuple(extract_dates(text)),
        amounts=tuple(extract_amounts(text)),
        contacts=tuple(extract_contacts(soup)),
    )


__all__ = [
    "AMOUNT_RE",
    "DATE_RE",
    "extract_amounts",
    "extract_contacts",
    "extract_dates",
    "extract_structured_data",
    "extract_tables",
]
