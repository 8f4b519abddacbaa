# civic_scout/crawler/link_extractor.py
"""
Link discovery for CivicScout: crawlable page links and downloadable
document links (the latter feed citations, never the frontier).
"""
from __future__ import annotations

from typing import List
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag

FILE_EXTENSIONS = (".pdf", ".csv", ".xlsx", ".xls", ".doc", ".docx", ".ods", ".odt")
MAX_FILE_LINKS = 20

_SKIP_PREFIXES = ("mailto:", "javascript:", "tel:", "#", "data:")


def _hrefs(soup: BeautifulSoup) -> List[str]:
    hrefs: List[str] = []
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        raw = href_val.strip()
        if raw and not raw.lower().startswith(_SKIP_PREFIXES):
            hrefs.append(raw)
    return hrefs


def is_document_url(url: str) -> bool:
    """True when the URL path ends with a downloadable document extension."""
    return urlparse(url).path.lower().endswith(FILE_EXTENSIONS)


def extract_links(soup: BeautifulSoup, base_url: str) -> List[str]:
    """
    Absolute HTTP(S) links in document order, deduplicated.

    Ignores mailto:, javascript:, tel:, in-page anchors and hrefs that do not
    parse as URLs (e.g. an unterminated IPv6 host). Domain filtering is left
    to the frontier.
    """
    links: List[str] = []
    seen: set[str] = set()
    for raw in _hrefs(soup):
        try:
            parsed = urlparse(urljoin(base_url, raw))
        except ValueError:
            continue
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            continue
        absolute = parsed._replace(fragment="").geturl()
        if absolute not in seen:
            seen.add(absolute)
            links.append(absolute)
    return links


def extract_file_links(soup: BeautifulSoup, base_url: str) -> List[str]:
    """Links to PDF/CSV/spreadsheet/word-processor documents, capped."""
    files = [link for link in extract_links(soup, base_url) if is_document_url(link)]
    return files[:MAX_FILE_LINKS]


__all__ = [
    "FILE_EXTENSIONS",
    "MAX_FILE_LINKS",
    "extract_file_links",
    "extract_links",
    "is_document_url",
]
