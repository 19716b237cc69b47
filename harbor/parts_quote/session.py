"""
Quote Session - owns the catalog and the working selection.

One session per workspace. The catalog is mirrored to the blob store
after every mutation; the selection is transient and is replaced
wholesale by each reconciliation run.

Catalog mutation (import/clear) and reconciliation both take the same
RLock, so a bulk import never interleaves with a run reading the catalog.
"""

import logging
import threading
from dataclasses import fields, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Optional, Sequence

from .catalog import (
    catalog_from_json,
    catalog_to_json,
    merge_parts,
    parts_from_records,
    sample_catalog,
)
from .config import Config
from .errors import EntryNotFound
from .models import (
    PRICE_FIELDS,
    ZERO,
    CatalogPart,
    CustomerInfo,
    ImportCandidate,
    MatchKind,
    QuoteStatistics,
    ReconcileProgress,
    ReconcileResult,
    SelectionEntry,
)
from .reconcile import CancelToken, reconcile
from .sources import to_int
from .store import BlobStore, InMemoryBlobStore

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _parse_quantity(value: Any) -> int:
    qty = to_int(value)
    return 1 if qty is None else max(1, qty)


def _parse_price(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        return ZERO
    if not price.is_finite() or price < 0:
        return ZERO
    return price


class QuoteSession:
    """
    Working state for one quotation: catalog, selection, pricing, customer.

    Args:
        store: Where the catalog is persisted (default: in memory)
        config: Pipeline configuration (default: Config())
    """

    def __init__(self, store: Optional[BlobStore] = None, config: Optional[Config] = None):
        self.store = store if store is not None else InMemoryBlobStore()
        self.config = config or Config()
        self.catalog: list[CatalogPart] = []
        self.selection: list[SelectionEntry] = []
        self.price_option: str = self.config.catalog.default_price_option
        self.customer = CustomerInfo()
        self._lock = threading.RLock()

    @property
    def storage_key(self) -> str:
        return self.config.catalog.storage_key

    # =========================================================================
    # Catalog
    # =========================================================================

    def load_catalog(self) -> list[CatalogPart]:
        """
        Load the catalog from the store.

        Falls back to the sample catalog (and persists it) when nothing
        is stored or the stored blob is unreadable.
        """
        with self._lock:
            blob = self.store.get(self.storage_key)
            if blob is not None:
                try:
                    self.catalog = catalog_from_json(blob)
                    logger.info(f"Loaded {len(self.catalog)} catalog parts")
                    return self.catalog
                except ValueError as e:
                    logger.error(f"Failed to load stored catalog: {e}")

            logger.info("No stored catalog, loading sample data")
            self.catalog = sample_catalog()
            self.save_catalog()
            return self.catalog

    def save_catalog(self) -> bool:
        """Persist the catalog. Returns False (and logs) on failure."""
        with self._lock:
            ok = self.store.set(self.storage_key, catalog_to_json(self.catalog))
        if not ok:
            logger.error("Failed to save catalog")
        return ok

    def import_parts(self, parts: Sequence[CatalogPart]) -> int:
        """Merge parts into the catalog, skipping existing ids. Returns the count added."""
        with self._lock:
            self.catalog, added = merge_parts(self.catalog, parts)
            self.save_catalog()
        logger.info(f"Imported {len(added)} new part(s), catalog now has {len(self.catalog)}")
        return len(added)

    def import_catalog_records(self, records: Sequence[dict]) -> int:
        """Merge spreadsheet rows (header-keyed) into the catalog."""
        return self.import_parts(parts_from_records(records))

    def clear_catalog(self) -> bool:
        """Empty the catalog and the selection, and persist the empty catalog."""
        with self._lock:
            self.catalog = []
            self.selection = []
            return self.save_catalog()

    def find_part(self, part_id: str) -> Optional[CatalogPart]:
        for part in self.catalog:
            if part.id == part_id:
                return part
        return None

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def reconcile(
        self,
        candidates: Sequence[ImportCandidate],
        on_progress: Optional[Callable[[ReconcileProgress], None]] = None,
        cancel: Optional[CancelToken] = None,
    ) -> ReconcileResult:
        """
        Reconcile a candidate batch against the catalog and replace the selection.

        A cancelled run leaves the current selection untouched.

        Raises:
            EmptyExtraction: candidates is empty
        """
        with self._lock:
            result = reconcile(
                candidates,
                list(self.catalog),
                on_progress=on_progress,
                chunk_size=self.config.reconcile.chunk_size,
                cancel=cancel,
                new_id_prefix=self.config.reconcile.new_id_prefix,
            )
            if not result.cancelled:
                self.selection = list(result.entries)
        return result

    # =========================================================================
    # Selection editing
    # =========================================================================

    def _entry_index(self, entry_id: str) -> int:
        for i, entry in enumerate(self.selection):
            if entry.id == entry_id:
                return i
        raise EntryNotFound(entry_id)

    def get_entry(self, entry_id: str) -> SelectionEntry:
        with self._lock:
            return self.selection[self._entry_index(entry_id)]

    def toggle_part(self, part_id: str) -> bool:
        """
        Select or deselect a catalog part by id.

        Returns:
            True if the part is now selected, False if it was removed

        Raises:
            EntryNotFound: part is neither selected nor in the catalog
        """
        with self._lock:
            for i, entry in enumerate(self.selection):
                if entry.id == part_id:
                    del self.selection[i]
                    return False
            part = self.find_part(part_id)
            if part is None:
                raise EntryNotFound(part_id)
            self.selection.append(SelectionEntry.from_part(part, quantity=1))
            return True

    def set_quantity(self, entry_id: str, quantity: Any) -> SelectionEntry:
        """Set an entry's quantity; invalid values become 1, minimum 1."""
        with self._lock:
            i = self._entry_index(entry_id)
            self.selection[i] = replace(self.selection[i], quantity=_parse_quantity(quantity))
            return self.selection[i]

    def set_price_override(self, entry_id: str, price: Any) -> SelectionEntry:
        """Set an entry's price override; invalid or negative values become 0 (no override)."""
        with self._lock:
            i = self._entry_index(entry_id)
            self.selection[i] = replace(self.selection[i], price_override=_parse_price(price))
            return self.selection[i]

    def remove_entry(self, entry_id: str):
        with self._lock:
            del self.selection[self._entry_index(entry_id)]

    def clear_selection(self):
        with self._lock:
            self.selection = []

    def apply_discount(self, percent: Any) -> int:
        """
        Set every entry's override to its effective price times percent/100.

        90 means 10% off. Returns the number of entries repriced.

        Raises:
            ValueError: percent is not a positive number
        """
        try:
            factor = Decimal(str(percent)) / 100
        except (InvalidOperation, ValueError):
            raise ValueError(f"Invalid discount percent: {percent!r}")
        if not factor.is_finite() or factor <= 0:
            raise ValueError(f"Discount percent must be positive, got {percent!r}")

        with self._lock:
            self.selection = [
                replace(
                    entry,
                    price_override=(entry.effective_price(self.price_option) * factor).quantize(
                        CENT, rounding=ROUND_HALF_UP
                    ),
                )
                for entry in self.selection
            ]
            return len(self.selection)

    def pending_review(self) -> list[SelectionEntry]:
        """Entries matched by a loose tier that nobody has confirmed yet."""
        with self._lock:
            return [e for e in self.selection if e.match_kind.needs_review and not e.human_reviewed]

    def confirm_review(self) -> int:
        """
        Mark every entry as human-reviewed.

        Returns:
            Number of loosely matched entries that were confirmed
        """
        with self._lock:
            fuzzy = sum(1 for e in self.selection if e.match_kind.needs_review)
            self.selection = [replace(e, human_reviewed=True) for e in self.selection]
        logger.info(f"Review confirmed for {len(self.selection)} entries ({fuzzy} loose matches)")
        return fuzzy

    # =========================================================================
    # Pricing / customer
    # =========================================================================

    def set_price_option(self, option: str):
        if option not in PRICE_FIELDS:
            raise ValueError(f"Unknown price option: {option}")
        self.price_option = option

    def set_customer(self, **values: Any) -> CustomerInfo:
        """Update customer info fields; unknown field names raise TypeError."""
        known = {f.name for f in fields(CustomerInfo)}
        unknown = set(values) - known
        if unknown:
            raise TypeError(f"Unknown customer field(s): {', '.join(sorted(unknown))}")
        with self._lock:
            self.customer = replace(
                self.customer, **{k: "" if v is None else str(v) for k, v in values.items()}
            )
            return self.customer

    def statistics(self) -> QuoteStatistics:
        """Totals over the current selection at the current price option."""
        with self._lock:
            stats = QuoteStatistics()
            for entry in self.selection:
                stats.total_price += entry.line_total(self.price_option)
                stats.total_quantity += entry.quantity or 1
                if entry.is_new:
                    stats.new_part_count += 1
                elif entry.match_kind.needs_review:
                    stats.fuzzy_match_count += 1
                elif entry.match_kind is MatchKind.EXACT:
                    stats.exact_match_count += 1
            return stats
