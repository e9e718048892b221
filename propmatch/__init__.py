"""propmatch — reconcile two property lists with exact and model-scored matching."""

from .api import OpenRouterClient, create_model_callable
from .batch import build_batches, process_chunk
from .cache import DuckDBCache, MemoryCache, cache_key
from .comparator import Comparator
from .config import MatchConfig
from .models import MatchResult, MatchStatus, Property, ReportEntry
from .money import normalize_money
from .prompt import build_comparison_prompt, parse_comparison_response
from .reconcile import ReconcileError, ReconcileResult, partition, reconcile
from .rules import classify_confidence, is_exact_match

__all__ = [
    # Model service
    "OpenRouterClient",
    "create_model_callable",
    # Batching
    "build_batches",
    "process_chunk",
    # Cache
    "DuckDBCache",
    "MemoryCache",
    "cache_key",
    # Comparison
    "Comparator",
    "build_comparison_prompt",
    "parse_comparison_response",
    # Orchestration
    "MatchConfig",
    "ReconcileError",
    "ReconcileResult",
    "partition",
    "reconcile",
    # Types and rules
    "MatchResult",
    "MatchStatus",
    "Property",
    "ReportEntry",
    "classify_confidence",
    "is_exact_match",
    "normalize_money",
]
