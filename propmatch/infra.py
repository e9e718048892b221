"""Persistent infrastructure tables in the cache database.

Centralizes creation and persistence for:
- _match_cache (comparison results keyed by pair hash)
- _run_meta (summary of the most recent run)
"""

from __future__ import annotations

import importlib.metadata
import json
import platform
import sys
import time
from typing import Any

import duckdb


def init_infra(conn: duckdb.DuckDBPyConnection) -> None:
    """Ensure all infra tables exist."""
    ensure_match_cache(conn)
    ensure_run_meta(conn)


# ---------------------------------------------------------------------------
# Match cache
# ---------------------------------------------------------------------------


def ensure_match_cache(conn: duckdb.DuckDBPyConnection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS _match_cache (
            key VARCHAR PRIMARY KEY,
            value VARCHAR NOT NULL,
            created_at TIMESTAMP DEFAULT current_timestamp
        )
        """
    )


def read_cache_values(
    conn: duckdb.DuckDBPyConnection, keys: list[str]
) -> dict[str, str]:
    """Return the stored values for the keys that exist."""
    if not keys:
        return {}
    placeholders = ", ".join("?" for _ in keys)
    rows = conn.execute(
        f"SELECT key, value FROM _match_cache WHERE key IN ({placeholders})",
        keys,
    ).fetchall()
    return dict(rows)


def write_cache_values(
    conn: duckdb.DuckDBPyConnection, items: list[tuple[str, str]]
) -> None:
    """Insert cache entries. Existing keys are left untouched."""
    if not items:
        return
    conn.executemany(
        """
        INSERT INTO _match_cache (key, value)
        VALUES (?, ?)
        ON CONFLICT (key) DO NOTHING
        """,
        items,
    )


def count_cache_entries(conn: duckdb.DuckDBPyConnection) -> int:
    try:
        row = conn.execute("SELECT COUNT(*) FROM _match_cache").fetchone()
    except duckdb.Error:
        return 0
    return int(row[0]) if row else 0


# ---------------------------------------------------------------------------
# Run metadata
# ---------------------------------------------------------------------------


def ensure_run_meta(conn: duckdb.DuckDBPyConnection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS _run_meta (
            key VARCHAR PRIMARY KEY,
            value VARCHAR
        )
        """
    )


def persist_run_meta(
    conn: duckdb.DuckDBPyConnection,
    model: str,
    *,
    list_a_file: str | None = None,
    list_b_file: str | None = None,
    report_file: str | None = None,
    status_counts: dict[str, int] | None = None,
    comparator_stats: dict[str, int] | None = None,
    settings: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Overwrite _run_meta with the summary of the latest run."""
    ensure_run_meta(conn)
    conn.execute("DELETE FROM _run_meta")

    try:
        pm_version = importlib.metadata.version("propmatch")
    except importlib.metadata.PackageNotFoundError:
        pm_version = "unknown"

    rows: list[tuple[str, str]] = [
        ("created_at_utc", time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())),
        ("propmatch_version", pm_version),
        ("python_version", sys.version.split()[0]),
        ("platform", platform.platform()),
        ("llm_model", model),
        ("success", json.dumps(success)),
    ]
    if list_a_file:
        rows.append(("list_a_file", list_a_file))
    if list_b_file:
        rows.append(("list_b_file", list_b_file))
    if report_file:
        rows.append(("report_file", report_file))
    if status_counts is not None:
        rows.append(("status_counts", json.dumps(status_counts, sort_keys=True)))
    if comparator_stats is not None:
        rows.append(
            ("comparator_stats", json.dumps(comparator_stats, sort_keys=True))
        )
    if settings:
        rows.append(("settings", json.dumps(settings, sort_keys=True)))

    conn.executemany("INSERT INTO _run_meta (key, value) VALUES (?, ?)", rows)


def read_run_meta(conn: duckdb.DuckDBPyConnection) -> dict[str, str]:
    """Read run metadata. Returns empty dict if table doesn't exist."""
    try:
        return dict(conn.execute("SELECT key, value FROM _run_meta").fetchall())
    except duckdb.Error:
        return {}
