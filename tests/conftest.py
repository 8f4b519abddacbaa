# File: tests/conftest.py
from collections.abc import AsyncIterator
from typing import Callable, Dict

import pytest
from aiohttp import web

from civic_scout.config import CrawlerConfig
from civic_scout.models import (
    CitationInfo,
    CrawlResult,
    DataType,
    ExtractedData,
    PageMetadata,
)


def html_page(title: str, body: str = "", links=()) -> str:
    """Small but long-enough HTML document with optional links."""
    anchors = "".join(f'<a href="{href}">link {i}</a>' for i, href in enumerate(links))
    filler = body or "Information about council services for local residents and businesses."
    return (
        f"<html><head><title>{title}</title>"
        f'<meta name="description" content="{title} page"></head>'
        f"<body><h1>{title}</h1><p>{filler}</p>{anchors}</body></html>"
    )


async def serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


def site_app(pages: Dict[str, str]) -> web.Application:
    """aiohttp app serving *pages* (path -> HTML) as text/html."""
    app = web.Application()

    def _handler(html: str):
        async def handle(_):
            return web.Response(text=html, content_type="text/html")
        return handle

    for path, html in pages.items():
        app.router.add_get(path, _handler(html))
    return app


@pytest.fixture()
def make_config(tmp_path) -> Callable[..., CrawlerConfig]:
    """
    Factory for a fast CrawlerConfig: no politeness delay, no retry backoff,
    output under tmp_path.
    """
    def _make(seeds=("http://localhost:8080",), **overrides) -> CrawlerConfig:
        params = dict(
            seed_urls=list(seeds),
            base_delay=0.0,
            max_delay=0.0,
            retry_delay=0.0,
            timeout=2.0,
            output_dir=tmp_path / "out",
        )
        params.update(overrides)
        return CrawlerConfig(**params)

    return _make


@pytest.fixture()
def make_result() -> Callable[..., CrawlResult]:
    """Factory for CrawlResult records with sensible defaults."""
    def _make(
        url: str = "https://www.bolton.gov.uk/council-tax",
        quality: float = 0.5,
        category: str = "Council Tax",
        data_type: DataType = DataType.FINANCIAL_INFO,
        extracted: ExtractedData = ExtractedData(),
        content_length: int = 2000,
    ) -> CrawlResult:
        return CrawlResult(
            url=url,
            title="Council Tax bands and charges",
            description="How much council tax you pay",
            content_excerpt="Council tax bands",
            data_type=data_type,
            category=category,
            metadata=PageMetadata(
                content_length=content_length,
                word_count=300,
                link_count=12,
                image_count=1,
                table_count=len(extracted.tables),
                form_count=0,
                heading_count=3,
                fetched_at="2024-01-01T00:00:00+00:00",
            ),
            extracted_data=extracted,
            quality=quality,
            citation=CitationInfo(
                source_url=url,
                title="Council Tax bands and charges",
                file_links=(),
                domain="www.bolton.gov.uk",
                is_government_site=True,
                confidence="medium",
            ),
        )

    return _make
