"""CLI entry point for propmatch.

Usage:
    # Reconcile two lists, write report.csv
    propmatch run data/list_a.json data/list_b.json

    # Inspect the cache database and the last run
    propmatch show propmatch_cache.db

    # Write synthetic list_a.json / list_b.json
    propmatch generate --count 100 -o data
"""

import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
import duckdb
from dotenv import find_dotenv, load_dotenv

# Load .env by walking upward from the CWD.
_dotenv_path = find_dotenv(usecwd=True)
DOTENV_PATH = Path(_dotenv_path) if _dotenv_path else None
if _dotenv_path:
    load_dotenv(_dotenv_path)

from propmatch.api import (
    OPENROUTER_API_KEY_ENV,
    OpenRouterClient,
    create_model_callable,
    has_openrouter_api_key,
)
from propmatch.cache import DuckDBCache, MatchCache, MemoryCache
from propmatch.comparator import Comparator
from propmatch.config import MatchConfig
from propmatch.export import summarize, write_report_csv
from propmatch.generate import generate_pairs, write_json
from propmatch.infra import count_cache_entries, persist_run_meta, read_run_meta
from propmatch.ingest import load_properties
from propmatch.reconcile import ReconcileError, ReconcileResult, reconcile

log = logging.getLogger(__name__)


def _meta_json(meta: dict[str, str], key: str) -> dict[str, Any]:
    """Parse a JSON blob from run meta."""
    raw = meta.get(key)
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return {}


def _require_openrouter_api_key() -> None:
    if has_openrouter_api_key():
        return

    hint = (
        f"Set OPENROUTER_API_KEY in your environment or in {DOTENV_PATH}"
        if DOTENV_PATH
        else "Set OPENROUTER_API_KEY in your environment or in a .env in the current directory (or a parent directory)."
    )
    raise click.ClickException(f"{OPENROUTER_API_KEY_ENV} is required. {hint}")


def _load_config(**overrides: Any) -> MatchConfig:
    try:
        config = MatchConfig.from_env()
        return dataclasses.replace(
            config, **{k: v for k, v in overrides.items() if v is not None}
        )
    except ValueError as e:
        raise click.ClickException(str(e))


@click.group()
def main():
    """propmatch — reconcile two property lists."""


@main.command()
@click.argument("list_a", type=click.Path(path_type=Path))
@click.argument("list_b", type=click.Path(path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=Path("report.csv"),
    show_default=True,
    help="Report CSV path",
)
@click.option("--workers", "-w", type=int, default=None, help="Concurrent workers (env NUM_WORKERS)")
@click.option(
    "--sub-batch-size",
    type=int,
    default=None,
    help="List-A items per model call (env LLM_BATCH_SIZE)",
)
@click.option(
    "--chunk-size",
    type=int,
    default=None,
    help="List-A items per processing chunk (env BATCH_SIZE)",
)
@click.option(
    "--max-candidates",
    type=int,
    default=None,
    help="Fuzzy candidates per list-A item (env MAX_CANDIDATES)",
)
@click.option("--model", "-m", default=None, help="Model identifier (env MODEL)")
@click.option(
    "--cache",
    "cache_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Cache database path (env CACHE_PATH)",
)
@click.option(
    "--no-cache-file",
    is_flag=True,
    help="Keep the comparison cache in memory for this run only",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress verbose output")
def run(
    list_a: Path,
    list_b: Path,
    output: Path,
    workers: int | None,
    sub_batch_size: int | None,
    chunk_size: int | None,
    max_candidates: int | None,
    model: str | None,
    cache_path: Path | None,
    no_cache_file: bool,
    quiet: bool,
):
    """Reconcile LIST_A against LIST_B and write a CSV report."""
    level = logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    config = _load_config(
        workers=workers,
        sub_batch_size=sub_batch_size,
        chunk_size=chunk_size,
        max_candidates=max_candidates,
        model=model,
        cache_path=str(cache_path) if cache_path else None,
    )

    try:
        records_a = load_properties(list_a)
        records_b = load_properties(list_b)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))

    _require_openrouter_api_key()

    log.info("List A: %s (%d records)", list_a, len(records_a))
    log.info("List B: %s (%d records)", list_b, len(records_b))
    log.info("Model: %s", config.model)
    log.info(
        "Workers: %d, sub-batch: %d, chunk: %d",
        config.workers,
        config.sub_batch_size,
        config.chunk_size,
    )

    disk_cache = None if no_cache_file else DuckDBCache(config.cache_path)
    cache: MatchCache = MemoryCache() if disk_cache is None else disk_cache.open()
    if disk_cache is not None:
        log.info("Cache: %s", config.cache_path)

    async def _run(comparator_holder: list[Comparator]) -> ReconcileResult:
        async with OpenRouterClient() as client:
            call_model = create_model_callable(
                client,
                config.model,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
            )
            comparator = Comparator(call_model, cache)
            comparator_holder.append(comparator)
            return await reconcile(records_a, records_b, comparator, config)

    holder: list[Comparator] = []
    result: ReconcileResult | None = None
    error: ReconcileError | None = None
    try:
        try:
            result = asyncio.run(_run(holder))
        except ReconcileError as e:
            error = e

        if disk_cache is not None:
            persist_run_meta(
                disk_cache.conn,
                config.model,
                list_a_file=str(list_a),
                list_b_file=str(list_b),
                report_file=str(output) if result else None,
                status_counts=summarize(result.report) if result else None,
                comparator_stats=holder[0].stats if holder else None,
                settings=config.to_dict(),
                success=result is not None,
            )
    finally:
        if disk_cache is not None:
            disk_cache.close()

    if error is not None or result is None:
        raise click.ClickException(f"Reconciliation failed: {error}")

    write_report_csv(result.report, output)
    log.info("Saved to: %s", output)

    if not quiet:
        _report_run_summary(result, holder[0].stats if holder else {})


def _report_run_summary(result: ReconcileResult, stats: dict[str, int]) -> None:
    counts = summarize(result.report)
    click.echo(f"\nReport entries: {len(result.report)}")
    for status, count in counts.items():
        click.echo(f"  {status}: {count}")

    if stats:
        click.echo(
            f"\nComparisons: {stats.get('cache_hits', 0)} cached, "
            f"{stats.get('cache_misses', 0)} scored by model "
            f"({stats.get('model_calls', 0)} calls, "
            f"{stats.get('model_errors', 0)} failed, "
            f"{stats.get('unparsed', 0)} unparsed)"
        )

    if result.duplicate_claims:
        click.echo(
            f"\nWarning: {len(result.duplicate_claims)} list-B record(s) "
            "were claimed by more than one worker"
        )


@main.command()
@click.argument("target", type=click.Path(path_type=Path))
def show(target: Path):
    """Show the last run and cache size stored in a cache database.

    \b
    Example:
        propmatch show propmatch_cache.db
    """
    if not target.exists():
        raise click.ClickException(f"{target} does not exist.")
    try:
        conn = duckdb.connect(str(target), read_only=True)
    except duckdb.Error as e:
        raise click.ClickException(f"Cannot open {target} as a DuckDB database: {e}")
    try:
        meta = read_run_meta(conn)
        entries = count_cache_entries(conn)
    finally:
        conn.close()

    click.echo(f"Cache: {target}")
    click.echo(f"Cached comparisons: {entries}")
    if not meta:
        click.echo("\nNo run recorded.")
        return

    click.echo(f"\nLast run: {meta.get('created_at_utc', '(unknown)')}")
    click.echo(f"Model: {meta.get('llm_model', '(unknown)')}")
    click.echo(f"Success: {meta.get('success', '(unknown)')}")
    if meta.get("list_a_file"):
        click.echo(f"List A: {meta['list_a_file']}")
    if meta.get("list_b_file"):
        click.echo(f"List B: {meta['list_b_file']}")
    if meta.get("report_file"):
        click.echo(f"Report: {meta['report_file']}")

    counts = _meta_json(meta, "status_counts")
    if counts:
        click.echo("\nStatuses:")
        for status in sorted(counts):
            click.echo(f"  {status}: {counts[status]}")

    stats = _meta_json(meta, "comparator_stats")
    if stats:
        click.echo("\nComparator:")
        for name in sorted(stats):
            click.echo(f"  {name}: {stats[name]}")


@main.command()
@click.option("--count", "-c", type=click.IntRange(min=1), default=1000, show_default=True)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(path_type=Path),
    default=Path("data"),
    show_default=True,
)
@click.option("--match-ratio", type=click.FloatRange(0.0, 1.0), default=0.7, show_default=True)
@click.option("--seed", type=int, default=None, help="Random seed for reproducible data")
def generate(count: int, output_dir: Path, match_ratio: float, seed: int | None):
    """Write synthetic list_a.json and list_b.json."""
    list_a, list_b = generate_pairs(count, match_ratio=match_ratio, seed=seed)
    path_a = output_dir / "list_a.json"
    path_b = output_dir / "list_b.json"
    write_json(list_a, path_a)
    write_json(list_b, path_b)
    click.echo(f"  created  {path_a} ({len(list_a)} records)")
    click.echo(f"  created  {path_b} ({len(list_b)} records)")


if __name__ == "__main__":
    main()
