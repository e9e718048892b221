"""Report serialization and summaries."""

from __future__ import annotations

from collections import Counter
from pathlib import Path

import polars as pl

from .models import MatchStatus, ReportEntry

REPORT_COLUMNS = [
    "List A Description",
    "List B Description",
    "Status",
    "Details",
]


def report_to_dataframe(report: list[ReportEntry]) -> pl.DataFrame:
    return pl.DataFrame(
        [entry.to_row() for entry in report],
        schema={name: pl.String for name in REPORT_COLUMNS},
    )


def write_report_csv(report: list[ReportEntry], path: Path | str) -> Path:
    """Write the report as CSV. Returns the written path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    report_to_dataframe(report).write_csv(path)
    return path


def summarize(report: list[ReportEntry]) -> dict[str, int]:
    """Entry count per status (every status present, zero if unused)."""
    counts = Counter(entry.status for entry in report)
    return {status.value: counts.get(status, 0) for status in MatchStatus}
