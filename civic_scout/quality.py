# civic_scout/quality.py
"""
Quality scoring.

:func:`score_quality` is the canonical, stored score in ``[0, 1]``.
:func:`structure_score` and :func:`quality_tier` are a coarser 0-100 view
used only for human-readable reporting; the two are never mixed.
"""
from __future__ import annotations

from civic_scout.models import ExtractedData, PageMetadata

MAX_SCORE = 100


def _title_points(title: str) -> int:
    points = 0
    if len(title) > 10:
        points += 10
    if len(title) > 30:
        points += 15
    return points


def _description_points(description: str) -> int:
    points = 0
    if len(description) > 50:
        points += 10
    if len(description) > 150:
        points += 10
    return points


def _content_points(content: str) -> int:
    points = 0
    if len(content) > 1000:
        points += 10
    if len(content) > 5000:
        points += 20
    return points


def _structured_points(extracted: ExtractedData) -> int:
    points = 0
    if extracted.tables:
        points += 10
    if extracted.contacts:
        points += 5
    if extracted.dates:
        points += 5
    if extracted.amounts:
        points += 5
    return points


def score_quality(title: str, description: str, content: str, extracted: ExtractedData) -> float:
    """
    Deterministic content-quality score in ``[0, 1]``.

    Title (max 25) + description (max 20) + content length (max 30) +
    structured-data bonuses (max 25), clamped to 100 and divided by 100.
    """
    score = (
        _title_points(title)
        + _description_points(description)
        + _content_points(content)
        + _structured_points(extracted)
    )
    return min(MAX_SCORE, max(0, score)) / MAX_SCORE


def structure_score(metadata: PageMetadata, extracted: ExtractedData, title: str = "") -> int:
    """Coarse 0-100 page assessment for reports."""
    length = metadata.content_length
    if length > 1000:
        content = 40
    elif length > 500:
        content = 30
    elif length > 200:
        content = 20
    else:
        content = 10

    structure = 0
    if title.strip():
        structure += 10
    if metadata.heading_count > 0:
        structure += 15
    if metadata.table_count > 0 or metadata.list_count > 0:
        structure += 15
    if metadata.table_count > 0:
        structure += 10

    contact = 20 if extracted.contacts else 0
    return min(MAX_SCORE, content + structure + contact)


def quality_tier(score: int) -> str:
    """Bucket a 0-100 score into excellent / good / average / poor."""
    if score >= 80:
        return "excellent"
    if score >= 65:
        return "good"
    if score >= 45:
        return "average"
    return "poor"


__all__ = ["quality_tier", "score_quality", "structure_score"]
