# File: civic_scout/storage.py
"""civic_scout.storage: read-only access to persisted crawl snapshots.

This is the query surface external consumers (dashboards, APIs) use; it
performs no extraction of its own.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

from civic_scout.models import CrawlResult, CrawlStats, DataType
from civic_scout.report.json_report import load_json
from civic_scout.report.persister import DATASET_FILE, RAW_DIR, STATS_FILE


class RecordStore:
    """Loads records and stats written by :class:`JsonFilePersister`."""

    def __init__(self, output_dir: Union[str, Path]) -> None:
        self.output_dir = Path(output_dir)

    def _load_records(self) -> List[CrawlResult]:
        path = self.output_dir / RAW_DIR / DATASET_FILE
        if not path.is_file():
            raise FileNotFoundError(f"Dataset snapshot not found: {path}")
        return [CrawlResult.from_dict(item) for item in load_json(path)]

    def get_records(
        self,
        data_type: Optional[Union[DataType, str]] = None,
        limit: Optional[int] = None,
    ) -> List[CrawlResult]:
        """Records in snapshot order, optionally filtered by data type and truncated."""
        records = self._load_records()
        if data_type is not None:
            wanted = DataType(data_type)
            records = [r for r in records if r.data_type is wanted]
        if limit is not None:
            if limit < 0:
                raise ValueError("limit must be >= 0")
            records = records[:limit]
        return records

    def get_stats(self) -> CrawlStats:
        path = self.output_dir / STATS_FILE
        if not path.is_file():
            raise FileNotFoundError(f"Stats snapshot not found: {path}")
        return CrawlStats.from_dict(load_json(path))


__all__ = ["RecordStore"]
