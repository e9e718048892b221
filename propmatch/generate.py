"""Synthetic property list generator.

Produces a list A / list B pair where roughly ``match_ratio`` of list A has
a reworded counterpart in list B (same template, alternate wording, money
equal or slightly off). The rest of list B is filler built from the
alternate wording of random templates.

Money fields mix formats on purpose: ``$1200000``, ``1200000``, ``1.2M``,
``1200K`` and spelled-out amounts (which normalize to NaN).

Usage:
    from propmatch.generate import generate_pairs, write_json

    list_a, list_b = generate_pairs(1000, seed=42)
    write_json(list_a, Path("data/list_a.json"))
"""

from __future__ import annotations

import json
import random
from pathlib import Path
from typing import Callable

from .models import Property

# (list A wording, list B wording)
PROPERTY_TEMPLATES: list[tuple[str, str]] = [
    (
        "Single Family Home with {beds} bedrooms and {baths} bathrooms",
        "Single Family Residence - {beds}BR/{baths}BA",
    ),
    ("Waterfront Vacation Property", "Beachfront Holiday Property"),
    ("Downtown Commercial Office Space", "Downtown Office Complex"),
    ("Retail Store with Storage", "Retail Storefront with Warehouse"),
    ("Multi-unit Residential Complex", "Apartment Building Complex"),
    ("Gardens and Recreation Area", "Parks and Playground Areas"),
    ("Historic Restaurant Building", "Vintage Dining Establishment"),
    ("Industrial Warehouse", "Large Storage Facility"),
    ("Golf Course Clubhouse", "Country Club Pavilion"),
    ("Marina Facility", "Coastal Boating Center"),
    ("Shopping Mall", "Retail Shopping Center"),
    ("Medical Office Building", "Healthcare Office Space"),
]

_WORD_AMOUNTS = ["One", "Two", "Three", "Four"]


def _format_money(rng: random.Random, amount: int) -> str:
    formats: list[Callable[[int], str]] = [
        lambda n: f"${n}",
        lambda n: f"{n}",
        lambda n: f"{n / 1_000_000:g}M",
        lambda n: f"{n / 1_000:g}K",
        lambda n: (
            f"{rng.choice(_WORD_AMOUNTS)} "
            f"{'million' if n >= 1_000_000 else 'hundred thousand'} Dollars"
        ),
    ]
    return rng.choice(formats)(amount)


def _fill(template: str, beds: int, baths: int) -> str:
    return template.replace("{beds}", str(beds)).replace("{baths}", str(baths))


def _amounts(rng: random.Random) -> tuple[int, int]:
    limit = rng.randint(300_000, 6_000_000)
    mortgage = int(limit * rng.uniform(0.6, 0.9))
    return limit, mortgage


def _make(
    rng: random.Random, template: str, beds: int, baths: int, limit: int, mortgage: int
) -> Property:
    return Property(
        description=_fill(template, beds, baths),
        limit=_format_money(rng, limit),
        mortgage_amount=_format_money(rng, mortgage),
    )


def generate_pairs(
    count: int, match_ratio: float = 0.7, seed: int | None = None
) -> tuple[list[Property], list[Property]]:
    """Generate ``count`` list-A records and ``count`` list-B records."""
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    if not 0.0 <= match_ratio <= 1.0:
        raise ValueError(f"match_ratio must be within [0, 1], got {match_ratio}")

    rng = random.Random(seed)
    list_a: list[Property] = []
    list_b: list[Property] = []
    unmatched_b: list[Property] = []

    for _ in range(count):
        base, alt = rng.choice(PROPERTY_TEMPLATES)
        beds, baths = rng.randint(1, 5), rng.randint(1, 3)
        limit, mortgage = _amounts(rng)
        list_a.append(_make(rng, base, beds, baths, limit, mortgage))

        if rng.random() < match_ratio:
            # 0 keeps the amounts equal; otherwise a small drift
            limit_delta = rng.choice([0, rng.randint(50_000, 200_000)])
            mortgage_delta = rng.choice([0, rng.randint(25_000, 100_000)])
            list_b.append(
                _make(
                    rng, alt, beds, baths, limit + limit_delta, mortgage + mortgage_delta
                )
            )
        else:
            _, other_alt = rng.choice(PROPERTY_TEMPLATES)
            limit, mortgage = _amounts(rng)
            unmatched_b.append(
                _make(
                    rng, other_alt, rng.randint(1, 5), rng.randint(1, 3), limit, mortgage
                )
            )

    list_b.extend(unmatched_b)
    return list_a, list_b


def write_json(records: list[Property], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump([r.to_dict() for r in records], f, indent=2)
