"""Core record and result types shared by every matching stage."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# (list A description, list B description)
ComparisonPair = tuple[str, str]

COMPARISON_ERROR_DETAILS = "comparison error"


class MatchStatus(str, Enum):
    MATCH = "Match"
    SIMILAR_MATCH = "Similar Match"
    MISMATCH = "Mismatch"


@dataclass(frozen=True)
class Property:
    """One property record. Money fields are kept verbatim."""

    description: str
    limit: str = ""
    mortgage_amount: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Property:
        return cls(
            description=_as_text(data.get("description")),
            limit=_as_text(data.get("limit")),
            mortgage_amount=_as_text(data.get("mortgageAmount")),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "description": self.description,
            "limit": self.limit,
            "mortgageAmount": self.mortgage_amount,
        }


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


@dataclass(frozen=True)
class MatchResult:
    """Outcome of comparing one pair.

    ``confidence`` is None when no score exists (exact matches carry 100,
    comparison errors carry None).
    """

    match: bool
    details: str
    confidence: float | None = None

    @classmethod
    def error(cls) -> MatchResult:
        return cls(match=False, details=COMPARISON_ERROR_DETAILS, confidence=None)

    def to_json(self) -> str:
        return json.dumps(
            {"match": self.match, "details": self.details, "confidence": self.confidence}
        )

    @classmethod
    def from_json(cls, raw: str) -> MatchResult:
        data = json.loads(raw)
        confidence = data.get("confidence")
        return cls(
            match=bool(data.get("match", False)),
            details=str(data.get("details", "")),
            confidence=float(confidence) if confidence is not None else None,
        )


@dataclass
class ReportEntry:
    list_a_desc: str
    list_b_desc: str
    status: MatchStatus
    details: str

    def to_row(self) -> dict[str, str]:
        return {
            "List A Description": self.list_a_desc,
            "List B Description": self.list_b_desc,
            "Status": self.status.value,
            "Details": self.details,
        }


@dataclass
class ItemCandidates:
    """Candidate list-B indices for one list-A item."""

    item: Property
    exact: list[int] = field(default_factory=list)
    fuzzy: list[int] = field(default_factory=list)


@dataclass
class ComparisonBatch:
    items: list[ItemCandidates] = field(default_factory=list)


@dataclass
class WorkerResult:
    report: list[ReportEntry] = field(default_factory=list)
    consumed: set[int] = field(default_factory=set)
