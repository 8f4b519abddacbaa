# File: tests/test_persister.py
import csv
import errno
import json
import os
from dataclasses import replace

import pytest

from civic_scout.errors import PersistError
from civic_scout.models import CrawlStats, DataType, ExtractedData, TableData
from civic_scout.report import json_report
from civic_scout.report.json_report import write_json_atomic
from civic_scout.report.persister import JsonFilePersister, MemoryPersister, category_slug
from civic_scout.storage import RecordStore


@pytest.fixture()
def results(make_result):
    return [
        make_result("https://www.bolton.gov.uk/council-tax", 0.7),
        make_result(
            "https://bolton.moderngov.co.uk/ieListMeetings.aspx?CId=1",
            0.4,
            category="Council Meetings",
            data_type=DataType.MEETING,
            extracted=ExtractedData(
                tables=(TableData(headers=("Date",), rows=(("01/02/2024",),)),),
                dates=("01/02/2024",),
            ),
        ),
        make_result("https://www.bolton.gov.uk/council-tax/bands", 0.9),
    ]


def stats_for(results) -> CrawlStats:
    stats = CrawlStats(total_urls=len(results), processed_urls=len(results))
    for r in results:
        stats.record(r)
    return stats


@pytest.mark.parametrize(
    "category,slug",
    [("Planning & Development", "planning-development"), ("Council Tax", "council-tax"), ("&&", "uncategorised")],
)
def test_category_slug(category, slug):
    assert category_slug(category) == slug


def test_snapshot_round_trip(tmp_path, results):
    persister = JsonFilePersister(tmp_path)
    stats = stats_for(results)

    persister.snapshot(results, stats)

    store = RecordStore(tmp_path)
    assert store.get_records() == results
    loaded = store.get_stats()
    assert loaded.result_count == 3
    assert loaded.average_quality == pytest.approx(stats.average_quality)
    assert loaded.categories == {"Council Tax": 2, "Council Meetings": 1}


def test_snapshot_writes_category_files(tmp_path, results):
    JsonFilePersister(tmp_path).snapshot(results, stats_for(results))

    raw = tmp_path / "raw-data"
    council_tax = json.loads((raw / "council-tax.json").read_text(encoding="utf-8"))
    meetings = json.loads((raw / "council-meetings.json").read_text(encoding="utf-8"))
    assert [r["url"] for r in council_tax] == [results[0].url, results[2].url]
    assert [r["data_type"] for r in meetings] == ["meeting"]


def test_snapshot_overwrites_previous(tmp_path, results):
    persister = JsonFilePersister(tmp_path)
    persister.snapshot(results[:1], stats_for(results[:1]))
    persister.snapshot(results, stats_for(results))

    assert len(RecordStore(tmp_path).get_records()) == 3
    leftovers = [p.name for p in tmp_path.rglob("*.tmp")]
    assert leftovers == []


def test_final_report_files(tmp_path, results):
    persister = JsonFilePersister(tmp_path, top_n=2, html_report=True)
    stats = stats_for(results)
    stats.finish()

    report = persister.final_report(results, stats)

    saved = json.loads(persister.summary_path.read_text(encoding="utf-8"))
    assert saved["total_results"] == 3
    assert [t["quality"] for t in saved["top_results"]] == [0.9, 0.7]
    assert report.top_results == saved["top_results"]
    html = (tmp_path / "reports" / "summary.html").read_text(encoding="utf-8")
    assert "Council Tax" in html


def test_store_filters_and_limits(tmp_path, results):
    JsonFilePersister(tmp_path).snapshot(results, stats_for(results))
    store = RecordStore(tmp_path)

    assert [r.url for r in store.get_records(data_type="meeting")] == [results[1].url]
    assert store.get_records(data_type=DataType.SERVICE_FORM) == []
    assert store.get_records(limit=2) == results[:2]
    with pytest.raises(ValueError):
        store.get_records(limit=-1)


def test_store_without_snapshot(tmp_path):
    with pytest.raises(FileNotFoundError):
        RecordStore(tmp_path).get_records()
    with pytest.raises(FileNotFoundError):
        RecordStore(tmp_path).get_stats()


def test_write_failure_is_transient(tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(PersistError) as exc_info:
        write_json_atomic({"a": 1}, blocker / "data.json")

    assert not exc_info.value.fatal


def test_disk_full_is_fatal_and_keeps_old_file(tmp_path, monkeypatch):
    target = tmp_path / "data.json"
    write_json_atomic({"version": 1}, target)

    def no_space(src, dst):
        raise OSError(errno.ENOSPC, os.strerror(errno.ENOSPC))

    monkeypatch.setattr(json_report.os, "replace", no_space)
    with pytest.raises(PersistError) as exc_info:
        write_json_atomic({"version": 2}, target)

    assert exc_info.value.fatal
    assert json.loads(target.read_text(encoding="utf-8")) == {"version": 1}
    assert list(tmp_path.glob("*.tmp")) == []


def test_memory_persister_copies_stats(results):
    persister = MemoryPersister()
    stats = stats_for(results[:1])
    persister.snapshot(results[:1], stats)
    stats.record(results[1])

    assert persister.snapshots[0][1].result_count == 1
    report = persister.final_report(results[:2], stats)
    assert persister.report is report
    assert report.total_results == 2


def test_final_report_csv_exports(tmp_path, results):
    persister = JsonFilePersister(tmp_path)

    persister.final_report(results, stats_for(results))

    with (tmp_path / "reports" / "pages-overview.csv").open(encoding="utf-8", newline="") as f:
        pages = list(csv.DictReader(f))
    assert [p["URL"] for p in pages] == [r.url for r in results]
    assert pages[1]["Category"] == "Council Meetings"
    assert pages[1]["Data Type"] == "meeting"
    assert [p["Quality Score"] for p in pages] == ["70", "40", "90"]
    assert pages[0]["Title"] == "Council Tax bands and charges"

    with (tmp_path / "reports" / "category-summary.csv").open(encoding="utf-8", newline="") as f:
        categories = list(csv.reader(f))
    assert categories == [
        ["Category", "Page Count", "Percentage", "Average Quality"],
        ["Council Tax", "2", "67", "80"],
        ["Council Meetings", "1", "33", "40"],
    ]


def test_csv_exports_of_empty_crawl(tmp_path):
    JsonFilePersister(tmp_path).final_report([], CrawlStats())

    pages = (tmp_path / "reports" / "pages-overview.csv").read_text(encoding="utf-8")
    assert pages.splitlines() == [
        "URL,Title,Category,Data Type,Quality Score,Content Length,Word Count,Links,Tables,Forms,Crawled At"
    ]
    summary = (tmp_path / "reports" / "category-summary.csv").read_text(encoding="utf-8")
    assert summary == "Category,Page Count,Percentage,Average Quality\n"


def test_titles_with_commas_are_quoted(tmp_path, make_result):
    comma = replace(make_result(), title="Bins, recycling and waste")

    JsonFilePersister(tmp_path).final_report([comma], stats_for([comma]))

    with (tmp_path / "reports" / "pages-overview.csv").open(encoding="utf-8", newline="") as f:
        row = next(csv.DictReader(f))
    assert row["Title"] == "Bins, recycling and waste"


def test_unwritable_html_report_raises_transient_error(tmp_path, results):
    html_target = tmp_path / "reports" / "summary.html"
    html_target.mkdir(parents=True)
    persister = JsonFilePersister(tmp_path, html_report=True)

    with pytest.raises(PersistError) as exc_info:
        persister.final_report(results, stats_for(results))

    assert not exc_info.value.fatal
    assert json.loads(persister.summary_path.read_text(encoding="utf-8"))["total_results"] == 3
    assert html_target.is_dir()
    assert [p.name for p in tmp_path.rglob("*.tmp")] == []
