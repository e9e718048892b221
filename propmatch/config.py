"""Run configuration read from the environment (.env is loaded by the CLI)."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from typing import Any

from .api import DEFAULT_MAX_TOKENS, DEFAULT_MODEL, DEFAULT_TEMPERATURE

DEFAULT_SUB_BATCH_SIZE = 10
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_MAX_CANDIDATES = 20
DEFAULT_CACHE_PATH = "propmatch_cache.db"


def _default_workers() -> int:
    return min(os.cpu_count() or 1, 4)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass
class MatchConfig:
    """Tunables for a reconciliation run.

    Args:
        sub_batch_size: list-A items per model call.
        chunk_size: list-A items per batch-processing chunk within a worker.
        workers: number of concurrent workers (interleaved partitions).
        max_candidates: fuzzy candidates kept per list-A item.
        model: model identifier passed to the model service.
        max_tokens: completion length bound per model call.
        temperature: sampling temperature per model call.
        cache_path: DuckDB file holding the comparison cache.
    """

    sub_batch_size: int = DEFAULT_SUB_BATCH_SIZE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    workers: int = field(default_factory=_default_workers)
    max_candidates: int = DEFAULT_MAX_CANDIDATES
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    cache_path: str = DEFAULT_CACHE_PATH

    def __post_init__(self) -> None:
        for name in ("sub_batch_size", "chunk_size", "workers", "max_candidates"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")

    @classmethod
    def from_env(cls) -> MatchConfig:
        return cls(
            sub_batch_size=_env_int("LLM_BATCH_SIZE", DEFAULT_SUB_BATCH_SIZE),
            chunk_size=_env_int("BATCH_SIZE", DEFAULT_CHUNK_SIZE),
            workers=_env_int("NUM_WORKERS", _default_workers()),
            max_candidates=_env_int("MAX_CANDIDATES", DEFAULT_MAX_CANDIDATES),
            model=os.environ.get("MODEL") or DEFAULT_MODEL,
            max_tokens=_env_int("MAX_TOKENS", DEFAULT_MAX_TOKENS),
            temperature=_env_float("TEMPERATURE", DEFAULT_TEMPERATURE),
            cache_path=os.environ.get("CACHE_PATH") or DEFAULT_CACHE_PATH,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
