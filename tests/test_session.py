# File: tests/test_session.py
# End-to-end crawl sessions against a local aiohttp server
from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import web

from civic_scout.crawler import session as session_module
from civic_scout.crawler.session import PROCESSING_ERROR, CrawlSession, SessionState
from civic_scout import engine as engine_module
from civic_scout.engine import Engine, start_crawl
from civic_scout.errors import PersistError
from civic_scout.report.persister import JsonFilePersister, MemoryPersister
from conftest import html_page, serve_app, site_app


def _paths(base: str, session: CrawlSession) -> list[str]:
    return [r.url[len(base):] for r in session.results]


# --------------------------------------------------------------------------- #
#                            Test-server fixtures                             #
# --------------------------------------------------------------------------- #


@pytest_asyncio.fixture
async def fan_out_server(unused_tcp_port: int) -> AsyncIterator[str]:
    """Root links to four children; only three fit the discovery cap."""
    app = site_app({
        "/": html_page("Council home", links=["/a", "/b", "/c", "/d"]),
        "/a": html_page("Page A", links=["/"]),
        "/b": html_page("Page B"),
        "/c": html_page("Page C"),
        "/d": html_page("Page D"),
    })
    async for url in serve_app(app, unused_tcp_port):
        yield url


@pytest_asyncio.fixture
async def mixed_server(unused_tcp_port: int) -> AsyncIterator[str]:
    """A healthy page, a broken page, a stub page and a robots.txt rule."""
    app = site_app({
        "/": html_page("Council home", links=["/broken", "/tiny", "/private"]),
        "/private": html_page("Private"),
    })

    async def handle_broken(_):
        return web.Response(status=500, text="boom")

    async def handle_tiny(_):
        return web.Response(text="<p>tiny</p>", content_type="text/html")

    async def handle_robots(_):
        return web.Response(text="User-agent: *\nDisallow: /private", content_type="text/plain")

    app.router.add_get("/broken", handle_broken)
    app.router.add_get("/tiny", handle_tiny)
    app.router.add_get("/robots.txt", handle_robots)
    async for url in serve_app(app, unused_tcp_port):
        yield url


# --------------------------------------------------------------------------- #
#                                   Tests                                     #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_breadth_first_order_and_discovery_cap(make_config, fan_out_server: str):
    config = make_config(seeds=[fan_out_server], max_depth=2)
    persister = MemoryPersister()
    session = CrawlSession(config, persister)

    report = await session.run()

    assert _paths(fan_out_server, session) == ["/", "/a", "/b", "/c"]
    assert session.state is SessionState.COMPLETED
    assert report.total_results == 4
    assert report.processed_urls == 4
    assert report.success_rate == 100.0
    assert session.stats.total_urls == 4
    assert persister.report is report


@pytest.mark.asyncio()
async def test_max_urls_bounds_processing(make_config, fan_out_server: str):
    config = make_config(seeds=[fan_out_server], max_urls=2)
    session = CrawlSession(config, MemoryPersister())

    await session.run()

    assert session.stats.processed_urls == 2
    assert _paths(fan_out_server, session) == ["/", "/a"]
    assert session.frontier.ceiling_reached


@pytest.mark.asyncio()
async def test_max_depth_zero_crawls_seeds_only(make_config, fan_out_server: str):
    config = make_config(seeds=[fan_out_server], max_depth=0)
    session = CrawlSession(config, MemoryPersister())

    await session.run()

    assert _paths(fan_out_server, session) == ["/"]


@pytest.mark.asyncio()
async def test_no_url_processed_twice(make_config, unused_tcp_port: int):
    app = site_app({
        "/": html_page("Home", links=["/a", "/a/", "/a#top", "/a?"]),
        "/a": html_page("Page A", links=["/", "/#main", "/a"]),
    })
    async for base in serve_app(app, unused_tcp_port):
        session = CrawlSession(make_config(seeds=[base]), MemoryPersister())
        await session.run()

    assert _paths(base, session) == ["/", "/a"]
    assert session.stats.processed_urls == 2


@pytest.mark.asyncio()
async def test_off_list_links_never_fetched(make_config, unused_tcp_port: int):
    app = site_app({
        "/": html_page("Home", links=["http://external.example/page", "/a"]),
        "/a": html_page("Page A"),
    })
    async for base in serve_app(app, unused_tcp_port):
        session = CrawlSession(make_config(seeds=[base]), MemoryPersister())
        await session.run()

    assert _paths(base, session) == ["/", "/a"]
    assert not any("external.example" in key for key in session.frontier.visited)


@pytest.mark.asyncio()
async def test_failures_stubs_and_robots(make_config, mixed_server: str):
    config = make_config(seeds=[mixed_server], max_retries=1)
    session = CrawlSession(config, MemoryPersister())

    report = await session.run()

    assert _paths(mixed_server, session) == ["/"]
    # /broken failed after one retry, /tiny was too short, /private is disallowed
    assert session.stats.failed_urls == 1
    assert session.stats.skipped_urls == 2
    assert session.stats.processed_urls == 3
    assert report.errors == [
        {"url": f"{mixed_server}/broken", "reason": "http_status", "detail": "HTTP 500"}
    ]
    assert report.success_rate == round(1 / 3 * 100, 1)


@pytest.mark.asyncio()
async def test_robots_ignored_when_disabled(make_config, mixed_server: str):
    config = make_config(seeds=[mixed_server], max_retries=0, respect_robots=False)
    session = CrawlSession(config, MemoryPersister())

    await session.run()

    assert _paths(mixed_server, session) == ["/", "/private"]


@pytest.mark.asyncio()
async def test_snapshot_every_save_interval(make_config, fan_out_server: str):
    config = make_config(seeds=[fan_out_server], save_interval=2)
    persister = MemoryPersister()
    session = CrawlSession(config, persister)

    await session.run()

    # two interval snapshots plus the final one
    assert [len(results) for results, _ in persister.snapshots] == [2, 4, 4]
    first_stats = persister.snapshots[0][1]
    assert first_stats.result_count == 2
    assert first_stats.end_time is None
    assert persister.snapshots[-1][1].end_time is not None


@pytest.mark.asyncio()
async def test_running_average_matches_results(make_config, fan_out_server: str):
    session = CrawlSession(make_config(seeds=[fan_out_server]), MemoryPersister())

    await session.run()

    expected = sum(r.quality for r in session.results) / len(session.results)
    assert session.stats.average_quality == pytest.approx(expected)
    assert all(0.0 <= r.quality <= 1.0 for r in session.results)
    assert sum(session.stats.categories.values()) == len(session.results)


@pytest.mark.asyncio()
async def test_cancel_before_run_aborts_with_final_snapshot(make_config, fan_out_server: str):
    persister = MemoryPersister()
    session = CrawlSession(make_config(seeds=[fan_out_server]), persister)
    session.cancel()

    report = await session.run()

    assert session.state is SessionState.ABORTED
    assert session.results == []
    assert report.total_results == 0
    assert len(persister.snapshots) == 1


@pytest.mark.asyncio()
async def test_fatal_persist_error_aborts_session(make_config, fan_out_server: str):
    class FullDisk(MemoryPersister):
        def snapshot(self, results, stats):
            raise PersistError("dataset.json", "No space left on device", fatal=True)

    session = CrawlSession(make_config(seeds=[fan_out_server], save_interval=1), FullDisk())

    report = await session.run()

    assert session.state is SessionState.ABORTED
    assert session.fatal_error is not None and session.fatal_error.fatal
    assert len(session.results) == 1
    assert report.total_results == 1


@pytest.mark.asyncio()
async def test_transient_persist_error_keeps_crawling(make_config, fan_out_server: str):
    class Flaky(MemoryPersister):
        failed = False

        def snapshot(self, results, stats):
            if not self.failed:
                self.failed = True
                raise PersistError("dataset.json", "Permission denied")
            super().snapshot(results, stats)

    persister = Flaky()
    session = CrawlSession(make_config(seeds=[fan_out_server], save_interval=1), persister)

    await session.run()

    assert session.state is SessionState.COMPLETED
    assert session.fatal_error is None
    assert len(session.results) == 4
    assert len(persister.snapshots[-1][0]) == 4


@pytest.mark.asyncio()
async def test_concurrent_workers_visit_each_url_once(make_config, unused_tcp_port: int):
    app = site_app({
        "/": html_page("Home", links=["/a", "/b", "/c"]),
        "/a": html_page("Page A", links=["/d", "/b"]),
        "/b": html_page("Page B", links=["/e", "/a"]),
        "/c": html_page("Page C", links=["/f", "/"]),
        "/d": html_page("Page D"),
        "/e": html_page("Page E"),
        "/f": html_page("Page F"),
    })
    async for base in serve_app(app, unused_tcp_port):
        config = make_config(seeds=[base], concurrency=3, max_depth=2)
        session = CrawlSession(config, MemoryPersister())
        await session.run()

    paths = _paths(base, session)
    assert sorted(paths) == ["/", "/a", "/b", "/c", "/d", "/e", "/f"]
    assert session.stats.processed_urls == 7


@pytest.mark.asyncio()
async def test_start_crawl_returns_finished_session(make_config, fan_out_server: str):
    persister = MemoryPersister()
    config = make_config(seeds=[fan_out_server])

    session = await start_crawl(config, persister, handle_signals=False)

    assert session.state is SessionState.COMPLETED
    assert session.report is persister.report
    assert session.report.total_results == 4


def test_engine_reports_unreachable_seed(make_config, unused_tcp_port: int):
    base = f"http://localhost:{unused_tcp_port}"
    persister = MemoryPersister()
    engine = Engine(make_config(seeds=[base], max_retries=0), persister)

    report = engine.run()

    assert engine.session.state is SessionState.COMPLETED
    assert report.total_results == 0
    assert report.failed_urls == 1
    assert report.errors[0]["reason"] == "network"


@pytest.mark.asyncio()
async def test_malformed_href_does_not_stop_crawl(make_config, unused_tcp_port: int):
    app = site_app({
        "/": html_page("Home", links=["/a"]),
        "/a": html_page("Page A", links=["http://[broken", "/b"]),
        "/b": html_page("Page B"),
    })
    async for base in serve_app(app, unused_tcp_port):
        session = CrawlSession(make_config(seeds=[base]), MemoryPersister())
        report = await session.run()

    assert session.state is SessionState.COMPLETED
    assert _paths(base, session) == ["/", "/a", "/b"]
    assert report.failed_urls == 0


@pytest.mark.asyncio()
async def test_page_error_is_recorded_and_crawl_continues(
    make_config, fan_out_server: str, monkeypatch
):
    real_build = session_module.build_result

    def build_or_fail(target, fetched, page, config):
        if target.url.endswith("/b"):
            raise RuntimeError("classifier exploded")
        return real_build(target, fetched, page, config)

    monkeypatch.setattr(session_module, "build_result", build_or_fail)
    session = CrawlSession(make_config(seeds=[fan_out_server]), MemoryPersister())

    report = await session.run()

    assert session.state is SessionState.COMPLETED
    assert _paths(fan_out_server, session) == ["/", "/a", "/c"]
    assert report.errors == [
        {
            "url": f"{fan_out_server}/b",
            "reason": PROCESSING_ERROR,
            "detail": "RuntimeError: classifier exploded",
        }
    ]
    assert session.stats.processed_urls == 4


@pytest.mark.asyncio()
async def test_unexpected_error_finalizes_before_raising(make_config, fan_out_server: str):
    class Broken(MemoryPersister):
        raised = False

        def snapshot(self, results, stats):
            if not self.raised:
                self.raised = True
                raise RuntimeError("snapshot bug")
            super().snapshot(results, stats)

    persister = Broken()
    session = CrawlSession(make_config(seeds=[fan_out_server], save_interval=1), persister)

    with pytest.raises(RuntimeError, match="snapshot bug"):
        await session.run()

    assert session.state is SessionState.ABORTED
    assert session.report is persister.report
    assert session.stats.end_time is not None
    assert persister.snapshots[-1][1].end_time is not None


@pytest.mark.asyncio()
async def test_unwritable_html_report_still_completes(make_config, fan_out_server: str, tmp_path):
    out = tmp_path / "site"
    (out / "reports" / "summary.html").mkdir(parents=True)
    persister = JsonFilePersister(out, html_report=True)
    session = CrawlSession(make_config(seeds=[fan_out_server]), persister)

    report = await session.run()

    assert session.state is SessionState.COMPLETED
    assert report.total_results == 4
    assert persister.summary_path.exists()
    assert (out / "reports" / "summary.html").is_dir()


@pytest.mark.asyncio()
async def test_worker_requires_running_session(make_config, fan_out_server: str):
    session = CrawlSession(make_config(seeds=[fan_out_server]), MemoryPersister())

    with pytest.raises(RuntimeError, match="not running"):
        await session._worker()


def test_engine_rejects_session_without_report(make_config, monkeypatch):
    config = make_config()

    async def unfinished(config, persister=None, **_):
        return CrawlSession(config, MemoryPersister())

    monkeypatch.setattr(engine_module, "start_crawl", unfinished)

    with pytest.raises(RuntimeError, match="without a summary report"):
        Engine(config, MemoryPersister()).run()
