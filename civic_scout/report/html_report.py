# File: civic_scout/report/html_report.py
"""civic_scout.report.html_report: HTML summary report rendered with Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from civic_scout.aggregator import SummaryReport
from civic_scout.report.json_report import write_text_atomic

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_NAME = "report.html.j2"


def render_html(
    report: SummaryReport,
    output_path: Union[Path, str],
    template_dir: Optional[Union[Path, str]] = None,
) -> Path:
    """Render the summary *report* and save it at *output_path*.

    Args:
        report: SummaryReport of a finished (or aborted) crawl.
        output_path: target HTML file.
        template_dir: directory holding ``report.html.j2``; the bundled
            template is used when omitted.

    Returns:
        Path of the written file.

    Raises:
        PersistError: the file could not be written.
    """
    template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template(TEMPLATE_NAME)

    context: dict[str, Any] = {"report": report}
    return write_text_atomic(template.render(**context), output_path)


__all__ = ["DEFAULT_TEMPLATE_DIR", "render_html"]
