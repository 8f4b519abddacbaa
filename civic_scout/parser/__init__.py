# civic_scout/parser/__init__.py
"""HTML parsing and structured data extraction."""
from civic_scout.parser.extractor import extract_structured_data
from civic_scout.parser.html_parser import ParsedPage, parse_html

__all__ = ["ParsedPage", "extract_structured_data", "parse_html"]
