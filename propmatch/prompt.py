"""Comparison prompt construction and response parsing.

Both functions are pure. Each compared pair is tagged ``Item <i>.<j>``
where ``i`` is the 1-based list-A item number and ``j`` the 1-based
candidate number within that item. The model is asked to answer one line
per pair:

    Item 1.2: 72%. Same function, different wording.

Parsing is line based. A strict pattern is tried first; if it fails, any
line tagged ``Item i.j`` yields the first percentage found on it. Other
lines are dropped. Identifiers that never appear simply have no result.
"""

import logging
import re
from dataclasses import dataclass

log = logging.getLogger(__name__)

# (item number, candidate number), both 1-based
ItemId = tuple[int, int]

RESPONSE_FORMAT = "Item <i>.<j>: <percent>%. <short rationale>"

_STRICT_LINE_RE = re.compile(
    r"^\s*[-*]?\s*Item\s+(\d+)\.(\d+)\s*:\s*(\d+(?:\.\d+)?)\s*%\s*\.?\s*(.*?)\s*$",
    re.IGNORECASE,
)
_ITEM_TAG_RE = re.compile(r"Item\s+(\d+)\.(\d+)", re.IGNORECASE)
_PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*%")

PROMPT_HEADER = """\
You compare property descriptions from two insurance schedules and decide \
whether each pair describes the same underlying property.

For every item below, give a confidence percentage (0-100) that the two \
descriptions refer to the same property, followed by a short rationale.

Scoring rubric:
- Same function (e.g. both are single family homes): at least 60%
- Same location and purpose (e.g. both are downtown office space): at least 70%
- Same broad category (e.g. both are retail, both are residential): at least 45%
- Unrelated properties: below 45%
"""


@dataclass(frozen=True)
class ParsedScore:
    confidence: float
    rationale: str


def build_comparison_prompt(groups: list[tuple[str, list[str]]]) -> str:
    """Build one prompt covering every (list A, candidates) group."""
    lines = [PROMPT_HEADER, "Items:"]
    for i, (desc_a, candidates) in enumerate(groups, start=1):
        for j, desc_b in enumerate(candidates, start=1):
            lines.append(f"Item {i}.{j}: A = {desc_a!r} | B = {desc_b!r}")
    lines.append("")
    lines.append(
        "Respond with exactly one line per item, in this format and nothing else:"
    )
    lines.append(RESPONSE_FORMAT)
    lines.append("Example: Item 1.1: 72%. Same function, different wording.")
    return "\n".join(lines)


def _parse_line(line: str) -> tuple[ItemId, ParsedScore] | None:
    m = _STRICT_LINE_RE.match(line)
    if m:
        item_id = (int(m.group(1)), int(m.group(2)))
        return item_id, ParsedScore(float(m.group(3)), m.group(4))

    tag = _ITEM_TAG_RE.search(line)
    if not tag:
        return None
    pct = _PERCENT_RE.search(line, tag.end())
    if not pct:
        return None
    rationale = line[pct.end():].strip(" .:-\t") or line[tag.end():].strip(" .:-\t")
    return (int(tag.group(1)), int(tag.group(2))), ParsedScore(
        float(pct.group(1)), rationale
    )


def parse_comparison_response(text: str) -> dict[ItemId, ParsedScore]:
    """Parse a model response into scores keyed by item id.

    Malformed lines and out-of-range percentages are discarded. The first
    line for a given id wins.
    """
    scores: dict[ItemId, ParsedScore] = {}
    for line in text.splitlines():
        if not line.strip():
            continue
        parsed = _parse_line(line)
        if parsed is None:
            log.debug("Discarding unparsed response line: %s", line[:200])
            continue
        item_id, score = parsed
        if not 0 <= score.confidence <= 100:
            log.debug("Discarding out-of-range confidence: %s", line[:200])
            continue
        if item_id in scores:
            log.debug("Ignoring repeated id Item %d.%d", *item_id)
            continue
        scores[item_id] = score
    return scores
