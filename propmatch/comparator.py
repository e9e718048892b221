"""Cache-augmented pair comparison.

Flow for one ``compare(pairs)`` call:
1. One batched cache read for every pair.
2. Misses are sent to the model in a single prompt (no call if none).
3. The response is parsed line by line; every parsed score is cached.
4. Results come back keyed by pair, in input order.

A failed model call never aborts the batch: each uncached pair gets a
``comparison error`` result (not cached) and cache hits are still returned.
Pairs whose identifier is missing from the response get no entry at all.
"""

import logging
from typing import Iterable

from .api import ModelCallable
from .cache import MatchCache, cache_key
from .models import ComparisonPair, MatchResult
from .prompt import build_comparison_prompt, parse_comparison_response
from .rules import SIMILAR_THRESHOLD

log = logging.getLogger(__name__)


def _group_pairs(
    pairs: list[ComparisonPair],
) -> tuple[list[tuple[str, list[str]]], dict[tuple[int, int], ComparisonPair]]:
    """Group pairs by list-A description, preserving first-seen order.

    Returns the prompt groups plus the ``(i, j)`` -> pair mapping.
    """
    groups: dict[str, list[str]] = {}
    for desc_a, desc_b in pairs:
        groups.setdefault(desc_a, []).append(desc_b)

    ids: dict[tuple[int, int], ComparisonPair] = {}
    for i, (desc_a, candidates) in enumerate(groups.items(), start=1):
        for j, desc_b in enumerate(candidates, start=1):
            ids[(i, j)] = (desc_a, desc_b)
    return list(groups.items()), ids


class Comparator:
    """Resolve comparison pairs through a cache and a model callable."""

    def __init__(self, call_model: ModelCallable, cache: MatchCache):
        self.call_model = call_model
        self.cache = cache
        self.stats: dict[str, int] = {
            "cache_hits": 0,
            "cache_misses": 0,
            "model_calls": 0,
            "model_errors": 0,
            "unparsed": 0,
        }

    async def compare(
        self, pairs: Iterable[ComparisonPair]
    ) -> dict[ComparisonPair, MatchResult]:
        # Duplicates collapse to one lookup; order is first occurrence.
        ordered = list(dict.fromkeys(pairs))
        if not ordered:
            return {}

        keys = [cache_key(a, b) for a, b in ordered]
        cached = await self.cache.mget(keys)

        resolved: dict[ComparisonPair, MatchResult] = {}
        misses: list[ComparisonPair] = []
        for pair, raw in zip(ordered, cached):
            if raw is None:
                misses.append(pair)
                continue
            try:
                resolved[pair] = MatchResult.from_json(raw)
            except (ValueError, TypeError, AttributeError):
                log.warning("Ignoring corrupt cache entry for %r", pair)
                misses.append(pair)

        self.stats["cache_hits"] += len(resolved)
        self.stats["cache_misses"] += len(misses)

        if misses:
            log.debug(
                "Cache hit: %d, need model call: %d", len(resolved), len(misses)
            )
            resolved.update(await self._compare_uncached(misses))

        return {pair: resolved[pair] for pair in ordered if pair in resolved}

    async def _compare_uncached(
        self, misses: list[ComparisonPair]
    ) -> dict[ComparisonPair, MatchResult]:
        groups, ids = _group_pairs(misses)
        prompt = build_comparison_prompt(groups)

        self.stats["model_calls"] += 1
        try:
            text = await self.call_model(prompt)
        except Exception as e:
            self.stats["model_errors"] += 1
            log.error(
                "Model call failed for %d pair(s): %s: %s",
                len(misses),
                type(e).__name__,
                e,
            )
            return {pair: MatchResult.error() for pair in misses}

        scores = parse_comparison_response(text)

        results: dict[ComparisonPair, MatchResult] = {}
        for item_id, pair in ids.items():
            score = scores.get(item_id)
            if score is None:
                continue
            results[pair] = MatchResult(
                match=score.confidence >= SIMILAR_THRESHOLD,
                details=score.rationale,
                confidence=score.confidence,
            )

        unparsed = len(misses) - len(results)
        if unparsed:
            self.stats["unparsed"] += unparsed
            log.warning(
                "No parsable score for %d of %d pair(s)", unparsed, len(misses)
            )

        if results:
            await self.cache.mset(
                [(cache_key(a, b), r.to_json()) for (a, b), r in results.items()]
            )
        return results
