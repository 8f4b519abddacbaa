# civic_scout/classifier.py
"""
Content classifier: maps (url, title, content) to a category label and a
:class:`~civic_scout.models.DataType`.

Evidence is checked in a fixed order: URL keywords, then title keywords,
then bare content heuristics. The first match wins.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from civic_scout.models import DataType

DEFAULT_CATEGORY = "General"
DEFAULT_DATA_TYPE = DataType.COUNCIL_PAGE


@dataclass(slots=True, frozen=True)
class Classification:
    category: str
    data_type: DataType


@dataclass(slots=True, frozen=True)
class KeywordRule:
    url_keywords: Tuple[str, ...]
    title_keywords: Tuple[str, ...]
    category: str
    data_type: DataType


# Order matters: more specific rules first.
KEYWORD_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(
        ("meeting", "agenda", "minutes", "moderngov"),
        ("meeting", "agenda", "minutes"),
        "Council Meetings",
        DataType.MEETING,
    ),
    KeywordRule(
        ("planning-application", "online-applications", "planning/application"),
        ("planning application",),
        "Planning & Development",
        DataType.PLANNING_APPLICATION,
    ),
    KeywordRule(("planning",), ("planning",), "Planning & Development", DataType.COUNCIL_PAGE),
    KeywordRule(("council-tax",), ("council tax",), "Council Tax", DataType.FINANCIAL_INFO),
    KeywordRule(("councillor",), ("councillor",), "Councillors & Democracy", DataType.COUNCILLOR),
    KeywordRule(
        ("budget", "spending"), ("budget", "spending"), "Finance & Spending", DataType.FINANCIAL_INFO
    ),
    KeywordRule(("news",), ("news",), "News & Updates", DataType.COUNCIL_PAGE),
    KeywordRule(("benefit",), ("benefit",), "Benefits & Support", DataType.FINANCIAL_INFO),
    KeywordRule(("housing",), ("housing",), "Housing", DataType.COUNCIL_PAGE),
    KeywordRule(("school",), ("school",), "Education & Schools", DataType.COUNCIL_PAGE),
    KeywordRule(
        ("business", "licensing"), ("business", "licensing"), "Business & Licensing", DataType.COUNCIL_PAGE
    ),
    KeywordRule(
        ("library", "libraries"), ("library", "libraries"), "Libraries & Leisure", DataType.COUNCIL_PAGE
    ),
)

# (substring, case-sensitive match, category, data type)
CONTENT_RULES: Tuple[Tuple[str, bool, str, DataType], ...] = (
    ("Councillor", True, "Councillors & Democracy", DataType.COUNCILLOR),
    ("£", True, "Finance & Spending", DataType.FINANCIAL_INFO),
    ("<table", False, "Data & Statistics", DataType.DATA_TABLE),
    ("<form", False, "Services & Forms", DataType.SERVICE_FORM),
)


def _match_keywords(text: str, field: str) -> Classification | None:
    for rule in KEYWORD_RULES:
        keywords = rule.url_keywords if field == "url" else rule.title_keywords
        if any(k in text for k in keywords):
            return Classification(rule.category, rule.data_type)
    return None


def classify(url: str, title: str, content: str) -> Classification:
    """Pure and deterministic; unmatched pages are General / council_page."""
    match = _match_keywords(url.lower(), "url") or _match_keywords(title.lower(), "title")
    if match is not None:
        return match

    content_lower = content.lower()
    for needle, case_sensitive, category, data_type in CONTENT_RULES:
        haystack = content if case_sensitive else content_lower
        if needle in haystack:
            return Classification(category, data_type)

    return Classification(DEFAULT_CATEGORY, DEFAULT_DATA_TYPE)


__all__ = ["CONTENT_RULES", "Classification", "KEYWORD_RULES", "KeywordRule", "classify"]
