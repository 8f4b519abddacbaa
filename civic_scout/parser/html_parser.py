# === FILE: civic_scout/parser/html_parser.py ===
"""HTML parsing utilities for CivicScout.

`parse_html()` turns a fetched body into a :class:`ParsedPage`: the
BeautifulSoup tree plus the handful of page-level fields every later stage
needs:

* title — document <title> text (falling back to the first <h1>) or
  ``"Untitled Page"``.
* description — ``meta[name=description]``, ``og:description`` or the first
  paragraph, truncated to 200 characters.
* text — visible text (used for the stored excerpt and regex extraction).
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from civic_scout.errors import ParseError

__all__: Sequence[str] = ("ParsedPage", "parse_html", "UNTITLED", "DESCRIPTION_LIMIT")

UNTITLED = "Untitled Page"
DESCRIPTION_LIMIT = 200


@dataclass(slots=True)
class ParsedPage:
    """Lightweight representation of an HTML page."""

    url: str
    soup: BeautifulSoup
    title: str
    description: str
    text: str

    def meta(self, name: str) -> str | None:
        """Return ``<meta name=...>`` content or *None*."""
        tag = self.soup.find("meta", attrs={"name": name})
        if tag is None:
            return None
        content = tag.get("content")
        return content.strip() if isinstance(content, str) and content.strip() else None


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return ""
    content = tag.get("content")
    return content.strip() if isinstance(content, str) else ""


def _description(soup: BeautifulSoup) -> str:
    desc = _meta_content(soup, name="description") or _meta_content(soup, property="og:description")
    if desc:
        return desc
    first_p = soup.find("p")
    if first_p is None:
        return ""
    return first_p.get_text(" ", strip=True)[:DESCRIPTION_LIMIT]


def parse_html(html: str, url: str) -> ParsedPage:
    """Parse raw HTML fetched from *url*.

    Raises
    ------
    ParseError
        If the parser rejects the markup outright.
    """
    try:
        soup = BeautifulSoup(html, "html.parser")
    except ParserRejectedMarkup as exc:
        raise ParseError(url, str(exc)) from exc

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""
    if not title:
        h1 = soup.find("h1")
        title = h1.get_text(" ", strip=True) if h1 else ""

    description = _description(soup)

    # Visible text: work on a copy so the tree keeps <script> for later stages
    text_soup = BeautifulSoup(str(soup), "html.parser")
    for element in text_soup(["script", "style", "noscript", "template"]):
        element.decompose()
    text = " ".join(text_soup.stripped_strings)

    return ParsedPage(
        url=url,
        soup=soup,
        title=title or UNTITLED,
        description=description,
        text=text,
    )
