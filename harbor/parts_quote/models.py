"""
Data models for the parts quotation pipeline.

All structured data uses dataclasses for type hints, __eq__, and __repr__.
Money values use Decimal for precision.
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Optional


ZERO = Decimal("0")

UNKNOWN_PART_NAME = "Unknown part"

# Price variants carried by every catalog part, in display order.
PRICE_FIELDS = (
    "guide_price",
    "factory_price",
    "service_price",
    "guide_price_taxed",
    "factory_price_taxed",
    "service_price_taxed",
)


class MatchKind(Enum):
    """
    How an imported identifier was resolved against the catalog.

    Tiers are listed from most to least strict; the matcher tries them
    in this order and stops at the first hit.
    """
    EXACT = "exact"
    CASE_INSENSITIVE = "caseInsensitive"
    NO_SPACE = "noSpace"
    NORMALIZED_FUZZY = "normalizedFuzzy"
    NONE = "none"

    @property
    def is_match(self) -> bool:
        return self is not MatchKind.NONE

    @property
    def needs_review(self) -> bool:
        """Matched, but by a tier looser than exact."""
        return self not in (MatchKind.EXACT, MatchKind.NONE)


@dataclass
class CatalogPart:
    """
    A canonical inventory record.

    `id` is the stable code ("标识码"); `drawing_number` is the
    identifier imported lists are matched against ("图号").
    """
    id: str
    drawing_number: str
    name: str
    guide_price: Decimal = ZERO
    factory_price: Decimal = ZERO
    service_price: Decimal = ZERO
    guide_price_taxed: Decimal = ZERO
    factory_price_taxed: Decimal = ZERO
    service_price_taxed: Decimal = ZERO
    note: str = ""
    date: str = ""

    def price(self, option: str) -> Decimal:
        """Get one of the six named prices."""
        if option not in PRICE_FIELDS:
            raise ValueError(f"Unknown price option: {option}")
        return getattr(self, option)


@dataclass
class ImportCandidate:
    """A raw line pulled from an external source, not yet matched."""
    identifier: str
    name: Optional[str] = None
    quantity: int = 1
    unit_price: Decimal = ZERO
    note: str = ""


@dataclass
class MatchResult:
    """
    Outcome of matching one identifier against the catalog.

    Carries the candidate's quantity, price and note through so the
    reconciliation step can build a selection entry from it alone.
    """
    identifier: str
    match_kind: MatchKind
    catalog_part: Optional[CatalogPart] = None
    quantity: int = 1
    unit_price: Decimal = ZERO
    note: str = ""

    @property
    def matched(self) -> bool:
        return self.catalog_part is not None


@dataclass
class SelectionEntry:
    """
    A line in the working quotation.

    Matched entries copy the catalog part's fields; provisional entries
    (`is_new`) have zeroed prices and the imported identifier as their
    drawing number.
    """
    id: str
    drawing_number: str
    name: str
    guide_price: Decimal = ZERO
    factory_price: Decimal = ZERO
    service_price: Decimal = ZERO
    guide_price_taxed: Decimal = ZERO
    factory_price_taxed: Decimal = ZERO
    service_price_taxed: Decimal = ZERO
    note: str = ""
    date: str = ""

    imported_identifier: str = ""
    quantity: int = 1
    price_override: Decimal = ZERO  # zero means "use the selected price option"
    imported_note: str = ""
    match_kind: MatchKind = MatchKind.NONE
    is_new: bool = False
    human_reviewed: bool = False

    @classmethod
    def from_part(cls, part: CatalogPart, **extra) -> "SelectionEntry":
        """Copy a catalog part's fields into a new entry."""
        values = {f.name: getattr(part, f.name) for f in fields(CatalogPart)}
        values.update(extra)
        return cls(**values)

    def price(self, option: str) -> Decimal:
        if option not in PRICE_FIELDS:
            raise ValueError(f"Unknown price option: {option}")
        return getattr(self, option)

    def effective_price(self, option: str) -> Decimal:
        """Unit price used for totals: the override if set, else the option."""
        if self.price_override:
            return self.price_override
        return self.price(option)

    def line_total(self, option: str) -> Decimal:
        return self.effective_price(option) * (self.quantity or 1)


@dataclass
class CustomerInfo:
    """Header block printed on a quotation."""
    name: str = ""
    contact: str = ""
    date: str = ""
    vessel: str = ""
    project: str = ""


@dataclass
class ReconcileProgress:
    """Progress event emitted after each processed chunk."""
    processed: int
    total: int

    @property
    def percent(self) -> int:
        total = self.total or 1
        return min(100, round(self.processed * 100 / total))


@dataclass
class ReconcileResult:
    """Accumulated output of one reconciliation run."""
    entries: list[SelectionEntry] = field(default_factory=list)
    matched_count: int = 0
    new_count: int = 0
    skipped: list = field(default_factory=list)  # CandidateProcessingError instances
    cancelled: bool = False

    @property
    def colliding_ids(self) -> list[str]:
        """Entry ids that occur more than once, in first-seen order."""
        seen: set[str] = set()
        dupes: list[str] = []
        for entry in self.entries:
            if entry.id in seen and entry.id not in dupes:
                dupes.append(entry.id)
            seen.add(entry.id)
        return dupes


@dataclass
class QuoteStatistics:
    """Totals shown under the quotation table."""
    total_price: Decimal = ZERO
    total_quantity: int = 0
    exact_match_count: int = 0
    fuzzy_match_count: int = 0
    new_part_count: int = 0
