"""
Catalog Matcher - classify an imported identifier against the catalog.

Tiers, tried strictly in order (first hit wins):

| Tier | Key                    | Result            |
|------|------------------------|-------------------|
| 1    | exact_key              | exact             |
| 2    | case_insensitive_key   | caseInsensitive   |
| 3    | no_space_key           | noSpace           |
| 4    | fuzzy_key              | normalizedFuzzy   |
| -    | (no tier matched)      | none              |

Drawing numbers are not guaranteed unique, so when several parts tie at
a tier the first one in catalog order wins. No index is built; each tier
is a linear scan, which is fine for session-sized catalogs.
"""

from dataclasses import replace
from typing import Callable, Optional, Sequence

from .models import CatalogPart, ImportCandidate, MatchKind, MatchResult
from .normalize import case_insensitive_key, exact_key, fuzzy_key, no_space_key

MATCH_TIERS: tuple[tuple[MatchKind, Callable[[object], str]], ...] = (
    (MatchKind.EXACT, exact_key),
    (MatchKind.CASE_INSENSITIVE, case_insensitive_key),
    (MatchKind.NO_SPACE, no_space_key),
    (MatchKind.NORMALIZED_FUZZY, fuzzy_key),
)


def _find_first(key: str, catalog: Sequence[CatalogPart], key_fn) -> Optional[CatalogPart]:
    for part in catalog:
        candidate_key = key_fn(part.drawing_number)
        if candidate_key and candidate_key == key:
            return part
    return None


def match_one(identifier: str, catalog: Sequence[CatalogPart]) -> MatchResult:
    """
    Match a single identifier against the catalog.

    Args:
        identifier: Raw identifier from an import source
        catalog: Catalog parts in display order

    Returns:
        MatchResult with the winning tier and part, or MatchKind.NONE
    """
    # A blank identifier never matches, not even a part with a blank drawing number
    if not exact_key(identifier):
        return MatchResult(identifier=identifier, match_kind=MatchKind.NONE)

    for kind, key_fn in MATCH_TIERS:
        key = key_fn(identifier)
        part = _find_first(key, catalog, key_fn)
        if part is not None:
            return MatchResult(identifier=identifier, match_kind=kind, catalog_part=part)

    return MatchResult(identifier=identifier, match_kind=MatchKind.NONE)


def match_candidate(candidate: ImportCandidate, catalog: Sequence[CatalogPart]) -> MatchResult:
    """Match a candidate, carrying its quantity, price and note through."""
    result = match_one(candidate.identifier, catalog)
    return replace(
        result,
        quantity=candidate.quantity or 1,
        unit_price=candidate.unit_price,
        note=candidate.note,
    )


def summarize_results(results: Sequence[MatchResult]) -> dict:
    """Generate counts per match tier."""
    counts = {kind.value: 0 for kind in MatchKind}
    for result in results:
        counts[result.match_kind.value] += 1

    counts["total"] = len(results)
    counts["matched"] = counts["total"] - counts[MatchKind.NONE.value]
    counts["needs_review"] = sum(
        1 for r in results if r.match_kind.needs_review
    )
    return counts
