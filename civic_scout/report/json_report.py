# civic_scout/report/json_report.py

"""
JSON output and atomic file writes for CivicScout.

Every artifact is written to a temporary file in the target directory and
then moved over the old one, so a crash mid-write leaves the previous
snapshot intact.
"""
from __future__ import annotations

import errno
import json
import os
import tempfile
from pathlib import Path
from typing import Any

from civic_scout.aggregator import SummaryReport
from civic_scout.errors import PersistError

_FATAL_ERRNOS = {errno.ENOSPC, errno.EDQUOT} if hasattr(errno, "EDQUOT") else {errno.ENOSPC}


def write_text_atomic(text: str, output_path: Path | str) -> Path:
    """
    Write *text* to *output_path* via write-then-rename.

    :raises PersistError: on any OS error; ``fatal`` is set for a full disk
    """
    output = Path(output_path)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{output.name}.", suffix=".tmp", dir=output.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, output)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise PersistError(str(output), exc.strerror or str(exc), fatal=exc.errno in _FATAL_ERRNOS) from exc
    return output


def write_json_atomic(data: Any, output_path: Path | str, *, indent: int | None = 2) -> Path:
    """Serialize *data* and write it with :func:`write_text_atomic`."""
    return write_text_atomic(json.dumps(data, ensure_ascii=False, indent=indent), output_path)


def render_json(report: SummaryReport, output_path: Path | str) -> Path:
    """
    Save the summary *report* as JSON at *output_path*.

    Example:
    ```python
    from civic_scout.report.json_report import render_json
    report_path = render_json(report, 'civic-data/reports/summary.json')
    ```
    """
    return write_json_atomic(report.to_dict(), output_path)


def load_json(path: Path | str) -> Any:
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


__all__ = ["load_json", "render_json", "write_json_atomic", "write_text_atomic"]
