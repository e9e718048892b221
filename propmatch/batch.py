"""Candidate batching and per-chunk match resolution.

For every list-A item in a chunk:
- Exact candidates (same description after case/whitespace normalization)
  win immediately, without a model call.
- Otherwise up to ``max_candidates`` non-exact list-B records are scored by
  the Comparator, and the first candidate the model calls a match wins.
  Candidates past the cap are never seen.

A list-B index consumed by one item is never offered to a later item of
the same chunk (or of later chunks sharing the same ``consumed`` set).
"""

import logging
from typing import Iterator

from .comparator import Comparator
from .config import DEFAULT_MAX_CANDIDATES, DEFAULT_SUB_BATCH_SIZE
from .models import (
    ComparisonBatch,
    ComparisonPair,
    ItemCandidates,
    MatchResult,
    MatchStatus,
    Property,
    ReportEntry,
    WorkerResult,
)
from .money import money_equal
from .rules import classify_confidence, normalize_description

log = logging.getLogger(__name__)

NO_CANDIDATE_DETAILS = "No corresponding property found"
NO_RESULT_DETAILS = "No comparison result available"


def build_batches(
    chunk: list[Property],
    list_b: list[Property],
    consumed: set[int],
    sub_batch_size: int = DEFAULT_SUB_BATCH_SIZE,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
) -> Iterator[ComparisonBatch]:
    """Yield comparison batches of ``sub_batch_size`` items.

    Batches are built lazily, so each one reflects indices consumed while
    processing the batches before it.
    """
    normalized_b = [normalize_description(p.description) for p in list_b]

    for start in range(0, len(chunk), sub_batch_size):
        items: list[ItemCandidates] = []
        for prop in chunk[start : start + sub_batch_size]:
            desc = normalize_description(prop.description)
            candidates = ItemCandidates(item=prop)
            for idx, desc_b in enumerate(normalized_b):
                if idx in consumed:
                    continue
                if desc_b == desc:
                    candidates.exact.append(idx)
                elif len(candidates.fuzzy) < max_candidates:
                    candidates.fuzzy.append(idx)
            items.append(candidates)
        yield ComparisonBatch(items=items)


def _money_details(a: Property, b: Property) -> str:
    return (
        f"Limits: {a.limit}/{b.limit}, "
        f"Mortgages: {a.mortgage_amount}/{b.mortgage_amount}"
    )


def _money_matches(a: Property, b: Property) -> bool:
    return money_equal(a.limit, b.limit) and money_equal(
        a.mortgage_amount, b.mortgage_amount
    )


def _describe(result: MatchResult) -> str:
    if result.confidence is None:
        return result.details
    return f"{result.confidence:g}% confidence. {result.details}".rstrip()


def _exact_entry(a: Property, b: Property) -> ReportEntry:
    if _money_matches(a, b):
        status = MatchStatus.MATCH
        note = "Exact description match."
    else:
        status = MatchStatus.SIMILAR_MATCH
        note = "Exact description match, amounts differ."
    return ReportEntry(
        list_a_desc=a.description,
        list_b_desc=b.description,
        status=status,
        details=f"{note} {_money_details(a, b)}",
    )


def _fuzzy_entry(
    candidates: ItemCandidates,
    list_b: list[Property],
    results: dict[ComparisonPair, MatchResult],
    consumed: set[int],
) -> ReportEntry:
    a = candidates.item

    for idx in candidates.fuzzy:
        if idx in consumed:
            continue
        b = list_b[idx]
        result = results.get((a.description, b.description))
        if result is None or not result.match:
            continue

        status = classify_confidence(result.confidence)
        if status is MatchStatus.MISMATCH:
            return ReportEntry(
                list_a_desc=a.description,
                list_b_desc=b.description,
                status=MatchStatus.MISMATCH,
                details=f"Insufficient confidence for a match. {_describe(result)}",
            )
        consumed.add(idx)
        if _money_matches(a, b):
            money_note = "Amounts agree."
        else:
            money_note = "Amounts differ."
        return ReportEntry(
            list_a_desc=a.description,
            list_b_desc=b.description,
            status=status,
            details=f"{_describe(result)} {money_note} {_money_details(a, b)}",
        )

    # No match: name a candidate for context. Exact candidates reaching this
    # point are all claimed; fuzzy ones claimed meanwhile are not named.
    available = [i for i in candidates.fuzzy if i not in consumed]
    if candidates.exact:
        first = list_b[candidates.exact[0]]
        details = "Exact match already claimed by another record"
    elif available:
        first = list_b[available[0]]
        result = results.get((a.description, first.description))
        details = _describe(result) if result is not None else NO_RESULT_DETAILS
    else:
        return ReportEntry(
            list_a_desc=a.description,
            list_b_desc="",
            status=MatchStatus.MISMATCH,
            details=NO_CANDIDATE_DETAILS,
        )
    return ReportEntry(
        list_a_desc=a.description,
        list_b_desc=first.description,
        status=MatchStatus.MISMATCH,
        details=details,
    )


async def process_batch(
    batch: ComparisonBatch,
    list_b: list[Property],
    comparator: Comparator,
    consumed: set[int],
) -> list[ReportEntry]:
    """Resolve one batch. Entries come back in the batch's item order."""
    entries: list[ReportEntry | None] = [None] * len(batch.items)
    remaining: list[int] = []

    # Exact matches short-circuit the model.
    for pos, candidates in enumerate(batch.items):
        exact_idx = next((i for i in candidates.exact if i not in consumed), None)
        if exact_idx is None:
            remaining.append(pos)
            continue
        consumed.add(exact_idx)
        entries[pos] = _exact_entry(candidates.item, list_b[exact_idx])

    # Indices claimed by the exact pass above are no longer on offer.
    pairs: list[ComparisonPair] = [
        (batch.items[pos].item.description, list_b[idx].description)
        for pos in remaining
        for idx in batch.items[pos].fuzzy
        if idx not in consumed
    ]

    results: dict[ComparisonPair, MatchResult] = {}
    if pairs:
        results = await comparator.compare(pairs)
    elif remaining:
        log.debug(
            "No available fuzzy candidates for %d item(s); skipping model",
            len(remaining),
        )

    for pos in remaining:
        entries[pos] = _fuzzy_entry(batch.items[pos], list_b, results, consumed)

    return [e for e in entries if e is not None]


async def process_chunk(
    chunk: list[Property],
    list_b: list[Property],
    comparator: Comparator,
    *,
    sub_batch_size: int = DEFAULT_SUB_BATCH_SIZE,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
    consumed: set[int] | None = None,
) -> WorkerResult:
    """Match a chunk of list A against list B.

    Args:
        chunk: list-A records, in report order.
        list_b: full list B (indices are stable).
        comparator: cache-augmented comparator.
        sub_batch_size: list-A items per model call.
        max_candidates: fuzzy candidates per list-A item.
        consumed: list-B indices already claimed; updated in place.
            A fresh set is used when omitted.

    Returns:
        WorkerResult with one report entry per chunk item and the
        consumed set.
    """
    if consumed is None:
        consumed = set()

    report: list[ReportEntry] = []
    for batch in build_batches(chunk, list_b, consumed, sub_batch_size, max_candidates):
        report.extend(await process_batch(batch, list_b, comparator, consumed))
    return WorkerResult(report=report, consumed=consumed)
