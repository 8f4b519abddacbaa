# civic_scout/citation.py
"""Citation records for crawled pages."""
from __future__ import annotations

from typing import Sequence
from urllib.parse import urlparse

from civic_scout.models import CitationInfo


def build_citation(
    url: str,
    title: str,
    file_links: Sequence[str],
    government_suffix: str = ".gov.uk",
) -> CitationInfo:
    """Pure: confidence is ``high`` when the page links at least one document."""
    domain = (urlparse(url).hostname or "").lower()
    suffix = government_suffix.lower()
    is_gov = domain.endswith(suffix) or domain == suffix.lstrip(".")
    return CitationInfo(
        source_url=url,
        title=title,
        file_links=tuple(file_links),
        domain=domain,
        is_government_site=is_gov,
        confidence="high" if len(file_links) > 0 else "medium",
    )


__all__ = ["build_citation"]
