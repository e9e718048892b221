"""Worker orchestration — partition list A, match concurrently, merge.

List A is split into ``workers`` interleaved slices (slice k takes every
workers-th record starting at k). Each slice runs as its own asyncio task
with its own consumed-index set; only the comparison cache is shared.

After every worker finishes:
1. Partial reports are concatenated (worker completion order).
2. Consumed sets are unioned.
3. Every list-B record nobody consumed gets a ``Mismatch`` entry.

Consumed indices are not visible across workers while they run, so two
workers can claim the same list-B record. Such indices are reported in
``ReconcileResult.duplicate_claims`` but left in the report as-is.

Usage:

    comparator = Comparator(call_model, MemoryCache())
    result = await reconcile(list_a, list_b, comparator, MatchConfig(workers=4))
"""

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass, field

from .batch import NO_CANDIDATE_DETAILS, process_chunk
from .comparator import Comparator
from .config import MatchConfig
from .models import MatchStatus, Property, ReportEntry, WorkerResult

log = logging.getLogger(__name__)


class ReconcileError(RuntimeError):
    """One or more workers crashed.

    ``partial`` holds the results of the workers that did complete.
    """

    def __init__(
        self,
        failures: dict[int, BaseException],
        partial: dict[int, WorkerResult],
    ):
        self.failures = failures
        self.partial = partial
        summary = "; ".join(
            f"worker {k}: {type(e).__name__}: {e}" for k, e in sorted(failures.items())
        )
        super().__init__(f"{len(failures)} worker(s) failed: {summary}")


@dataclass
class ReconcileResult:
    report: list[ReportEntry]
    consumed: set[int]
    duplicate_claims: dict[int, int] = field(default_factory=dict)  # index -> claims
    elapsed_s: float = 0.0


def partition(items: list[Property], workers: int) -> list[list[Property]]:
    """Split into ``workers`` interleaved slices. Slices may be empty."""
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    return [items[k::workers] for k in range(workers)]


async def run_worker(
    worker_id: int,
    items: list[Property],
    list_b: list[Property],
    comparator: Comparator,
    config: MatchConfig,
) -> WorkerResult:
    """Process one partition chunk by chunk, sharing one consumed set."""
    result = WorkerResult()
    for start in range(0, len(items), config.chunk_size):
        chunk = items[start : start + config.chunk_size]
        partial = await process_chunk(
            chunk,
            list_b,
            comparator,
            sub_batch_size=config.sub_batch_size,
            max_candidates=config.max_candidates,
            consumed=result.consumed,
        )
        result.report.extend(partial.report)
        log.info(
            "[worker %d] %d/%d records processed",
            worker_id,
            min(start + config.chunk_size, len(items)),
            len(items),
        )
    return result


def unmatched_entries(list_b: list[Property], consumed: set[int]) -> list[ReportEntry]:
    return [
        ReportEntry(
            list_a_desc="",
            list_b_desc=prop.description,
            status=MatchStatus.MISMATCH,
            details=NO_CANDIDATE_DETAILS,
        )
        for idx, prop in enumerate(list_b)
        if idx not in consumed
    ]


async def reconcile(
    list_a: list[Property],
    list_b: list[Property],
    comparator: Comparator,
    config: MatchConfig | None = None,
) -> ReconcileResult:
    """Reconcile list A against list B.

    Raises:
        ReconcileError: if any worker fails. Completed workers' results
            are attached as ``partial``.
    """
    config = config or MatchConfig()
    start_time = time.time()

    slices = partition(list_a, config.workers)
    log.info(
        "Reconciling %d list-A against %d list-B records with %d worker(s)",
        len(list_a),
        len(list_b),
        config.workers,
    )

    async def _run(k: int, items: list[Property]) -> tuple[int, WorkerResult]:
        return k, await run_worker(k, items, list_b, comparator, config)

    tasks = [asyncio.create_task(_run(k, s)) for k, s in enumerate(slices)]

    completed: dict[int, WorkerResult] = {}
    failures: dict[int, BaseException] = {}
    report: list[ReportEntry] = []

    # Merge in completion order; crashes are collected, not raised, until
    # every worker is done.
    pending: set[asyncio.Task] = set(tasks)
    task_ids = {t: k for k, t in enumerate(tasks)}
    while pending:
        finished, pending = await asyncio.wait(
            pending, return_when=asyncio.FIRST_COMPLETED
        )
        for fut in finished:
            exc = fut.exception()
            if exc is not None:
                k = task_ids[fut]
                failures[k] = exc
                log.error("[worker %d] FAILED: %s: %s", k, type(exc).__name__, exc)
                continue
            k, result = fut.result()
            completed[k] = result
            report.extend(result.report)

    if failures:
        raise ReconcileError(failures, completed)

    claims = Counter(idx for r in completed.values() for idx in r.consumed)
    consumed = set(claims)
    duplicates = {idx: n for idx, n in sorted(claims.items()) if n > 1}
    if duplicates:
        log.warning(
            "%d list-B record(s) claimed by more than one worker: %s",
            len(duplicates),
            ", ".join(str(i) for i in duplicates),
        )

    report.extend(unmatched_entries(list_b, consumed))

    elapsed_s = time.time() - start_time
    log.info(
        "Reconciliation complete: %d entries, %d list-B consumed (%.1fs)",
        len(report),
        len(consumed),
        elapsed_s,
    )
    return ReconcileResult(
        report=report,
        consumed=consumed,
        duplicate_claims=duplicates,
        elapsed_s=elapsed_s,
    )
