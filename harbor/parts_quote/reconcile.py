"""
Reconciliation Engine - turn a candidate batch into selection entries.

The batch is deduplicated by identifier, then matched in input order in
chunks. After each chunk a ReconcileProgress is yielded; that yield is the
only scheduling point, so a caller driving the generator can refresh a
display or check for cancellation between chunks.

Matched candidates become copies of their catalog part; unmatched ones
become provisional parts with id NEW_<identifier> and zeroed prices. A
candidate that raises is logged and skipped without aborting the batch.
"""

import logging
import threading
from typing import Callable, Generator, Iterable, List, Optional, Sequence

from .errors import CandidateProcessingError, EmptyExtraction
from .matcher import match_candidate
from .models import (
    UNKNOWN_PART_NAME,
    CatalogPart,
    ImportCandidate,
    MatchKind,
    MatchResult,
    ReconcileProgress,
    ReconcileResult,
    SelectionEntry,
)

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 20
NEW_ID_PREFIX = "NEW_"

Matcher = Callable[[ImportCandidate, Sequence[CatalogPart]], MatchResult]


class CancelToken:
    """Cooperative cancellation flag, checked between chunks."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def dedupe_candidates(candidates: Iterable[ImportCandidate]) -> List[ImportCandidate]:
    """Drop repeated identifiers, keeping the first occurrence."""
    seen = set()
    unique = []
    for candidate in candidates:
        if candidate.identifier in seen:
            continue
        seen.add(candidate.identifier)
        unique.append(candidate)
    return unique


def build_entry(
    candidate: ImportCandidate,
    result: MatchResult,
    new_id_prefix: str = NEW_ID_PREFIX,
) -> SelectionEntry:
    """Build a selection entry from a match result."""
    if result.catalog_part is not None:
        return SelectionEntry.from_part(
            result.catalog_part,
            imported_identifier=candidate.identifier,
            quantity=result.quantity,
            price_override=result.unit_price,
            imported_note=result.note,
            match_kind=result.match_kind,
        )

    return SelectionEntry(
        id=f"{new_id_prefix}{candidate.identifier}",
        drawing_number=candidate.identifier,
        name=candidate.name or UNKNOWN_PART_NAME,
        note=candidate.note or f"Imported from customer file: {candidate.identifier}",
        imported_identifier=candidate.identifier,
        quantity=result.quantity,
        price_override=result.unit_price,
        imported_note=result.note,
        match_kind=MatchKind.NONE,
        is_new=True,
    )


def iter_reconcile(
    candidates: Sequence[ImportCandidate],
    catalog: Sequence[CatalogPart],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    cancel: Optional[CancelToken] = None,
    matcher: Matcher = match_candidate,
    new_id_prefix: str = NEW_ID_PREFIX,
) -> Generator[ReconcileProgress, None, ReconcileResult]:
    """
    Reconcile a batch chunk by chunk.

    Yields a ReconcileProgress after each chunk and returns the
    ReconcileResult (available as StopIteration.value, or via
    `yield from`).

    Args:
        candidates: Extracted candidates, in source order
        catalog: Catalog snapshot; not mutated
        chunk_size: Candidates matched per chunk
        cancel: Optional token checked before each chunk
        matcher: Per-candidate match function
        new_id_prefix: Prefix for provisional part ids

    Raises:
        EmptyExtraction: candidates is empty
    """
    if not candidates:
        raise EmptyExtraction()
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    unique = dedupe_candidates(candidates)
    total = len(unique)
    result = ReconcileResult()

    for start in range(0, total, chunk_size):
        if cancel is not None and cancel.cancelled:
            logger.info(f"Reconciliation cancelled after {start}/{total} candidates")
            result.cancelled = True
            break

        for candidate in unique[start:start + chunk_size]:
            try:
                match = matcher(candidate, catalog)
                entry = build_entry(candidate, match, new_id_prefix)
            except Exception as e:
                error = CandidateProcessingError(candidate.identifier, e)
                logger.error(str(error))
                result.skipped.append(error)
                continue

            result.entries.append(entry)
            if entry.is_new:
                result.new_count += 1
            else:
                result.matched_count += 1

        yield ReconcileProgress(processed=min(start + chunk_size, total), total=total)

    collisions = result.colliding_ids
    if collisions:
        logger.warning(f"Duplicate entry ids in reconciled selection: {', '.join(collisions)}")

    logger.info(
        f"Reconciled {total} candidate(s): {result.matched_count} matched, "
        f"{result.new_count} new, {len(result.skipped)} skipped"
    )
    return result


def reconcile(
    candidates: Sequence[ImportCandidate],
    catalog: Sequence[CatalogPart],
    on_progress: Optional[Callable[[ReconcileProgress], None]] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    cancel: Optional[CancelToken] = None,
    matcher: Matcher = match_candidate,
    new_id_prefix: str = NEW_ID_PREFIX,
) -> ReconcileResult:
    """
    Reconcile a batch to completion, reporting progress through a callback.

    Returns:
        ReconcileResult with entries in input order (after dedup)
    """
    gen = iter_reconcile(
        candidates,
        catalog,
        chunk_size=chunk_size,
        cancel=cancel,
        matcher=matcher,
        new_id_prefix=new_id_prefix,
    )
    while True:
        try:
            progress = next(gen)
        except StopIteration as stop:
            return stop.value
        if on_progress is not None:
            on_progress(progress)
