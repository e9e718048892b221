"""Shared fixtures and helpers for the propmatch test suite."""

import ast
import re

import pytest

from propmatch.cache import MemoryCache
from propmatch.comparator import Comparator
from propmatch.models import Property

_PROMPT_ITEM_RE = re.compile(r"^Item (\d+)\.(\d+): A = (.*) \| B = (.*)$")


def _props(*descriptions: str, limit: str = "", mortgage: str = "") -> list[Property]:
    """Build properties sharing the same money fields."""
    return [Property(d, limit, mortgage) for d in descriptions]


def _prompt_pairs(prompt: str) -> dict[tuple[int, int], tuple[str, str]]:
    """Recover ``(i, j) -> (desc_a, desc_b)`` from a comparison prompt."""
    pairs = {}
    for line in prompt.splitlines():
        m = _PROMPT_ITEM_RE.match(line)
        if m:
            pairs[(int(m.group(1)), int(m.group(2)))] = (
                ast.literal_eval(m.group(3)),
                ast.literal_eval(m.group(4)),
            )
    return pairs


class ScriptedModel:
    """Fake model that scores pairs from a lookup table.

    Unknown pairs get ``default`` confidence. Every prompt is recorded.
    """

    def __init__(
        self,
        scores: dict[tuple[str, str], tuple[float, str]] | None = None,
        default: float = 10,
    ):
        self.scores = scores or {}
        self.default = default
        self.prompts: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        lines = []
        for (i, j), pair in sorted(_prompt_pairs(prompt).items()):
            confidence, rationale = self.scores.get(pair, (self.default, "Unrelated."))
            lines.append(f"Item {i}.{j}: {confidence:g}%. {rationale}")
        return "\n".join(lines)


class FailingModel:
    """Fake model whose every call raises."""

    def __init__(self, exc: Exception | None = None):
        self.exc = exc or RuntimeError("OpenRouter API error: 503: unavailable")
        self.calls = 0

    async def __call__(self, prompt: str) -> str:
        self.calls += 1
        raise self.exc


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def model():
    return ScriptedModel()


@pytest.fixture
def comparator(model, cache):
    return Comparator(model, cache)
