"""
Fuzzy multi-field search over the stock catalog.

Each entry is scored on its code, local name, foreign name and sector.
Every field is compared twice, once in normalized form (see normalizer.py)
and once as plain lowercase, and the better outcome wins:

    exact match      -> 1000
    prefix match     -> 500
    substring match  -> 100 - index of first occurrence (can go negative)
    no match         -> 0

Sector scores are weighted by 0.8. An entry scores the max over its fields
and is dropped when that max is 0.
"""

from dataclasses import dataclass, asdict
from typing import Iterable, List

from .catalog import CatalogEntry
from .normalizer import normalize


EXACT_SCORE = 1000
PREFIX_SCORE = 500
SUBSTRING_BASE = 100
SECTOR_WEIGHT = 0.8
DEFAULT_LIMIT = 10


@dataclass(frozen=True)
class ScoredEntry:
    """A catalog entry with its relevance score for one query."""
    code: str
    name_local: str
    name_foreign: str
    sector: str
    market: str
    score: float

    @classmethod
    def from_entry(cls, entry: CatalogEntry, score: float) -> "ScoredEntry":
        return cls(score=score, **asdict(entry))


def calculate_score(target: str, query: str) -> float:
    """Score a single field value against a query."""
    normalized_target = normalize(target)
    normalized_query = normalize(query)
    lower_target = target.lower()
    lower_query = query.lower()

    if normalized_target == normalized_query or lower_target == lower_query:
        return EXACT_SCORE

    if normalized_target.startswith(normalized_query) or lower_target.startswith(lower_query):
        return PREFIX_SCORE

    if normalized_query in normalized_target:
        return SUBSTRING_BASE - normalized_target.index(normalized_query)
    if lower_query in lower_target:
        return SUBSTRING_BASE - lower_target.index(lower_query)

    return 0


def score_entry(entry: CatalogEntry, query: str) -> float:
    """Best field score for an entry (sector matches down-weighted)."""
    return max(
        0,
        calculate_score(entry.code, query),
        calculate_score(entry.name_local, query),
        calculate_score(entry.name_foreign, query),
        calculate_score(entry.sector, query) * SECTOR_WEIGHT,
    )


def search(catalog: Iterable[CatalogEntry], query: str, limit: int = DEFAULT_LIMIT) -> List[ScoredEntry]:
    """
    Rank catalog entries against a query.

    Args:
        catalog: Entries to scan, in catalog order
        query: Code, Japanese name, English name or sector text
        limit: Maximum number of results

    Returns:
        Up to ``limit`` entries sorted by descending score; ties keep
        catalog order.
    """
    if not query or not query.strip():
        return []

    trimmed = query.strip()
    results: List[ScoredEntry] = []

    for entry in catalog:
        score = score_entry(entry, trimmed)
        if score > 0:
            results.append(ScoredEntry.from_entry(entry, score))

    results.sort(key=lambda r: r.score, reverse=True)
    return results[:limit]
