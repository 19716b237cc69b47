"""
Import workflows - turn an uploaded file or pasted text into a reconciled
selection.

| Mode     | Source                      | Candidates from                         |
|----------|-----------------------------|-----------------------------------------|
| scan     | any workbook                | every identifier-shaped cell            |
| document | PDF / Word                  | text-mode extraction                    |
| customer | customer part list workbook | header-keyed rows of the first sheet    |
| template | quotation template workbook | parts rows + customer info block        |
| batch    | pasted text                 | one identifier per line                 |

"auto" picks scan for workbooks and document for PDF/Word.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from .errors import ExtractionUnavailable, NoValidData
from .extractor import extract_from_file, extract_from_sheets
from .models import ZERO, CustomerInfo, ImportCandidate, ReconcileProgress, ReconcileResult
from .reconcile import CancelToken, dedupe_candidates
from .session import QuoteSession
from .sources import Sheet, cell_text, detect_file_type, read_workbook, to_decimal, to_int

logger = logging.getLogger(__name__)

IMPORT_MODES = ("auto", "scan", "customer", "template")
BATCH_NOTE = "Manual batch add"

# Header aliases per field
CUSTOMER_ID_FIELDS = ["图号", "标识码", "Part No."]
TEMPLATE_ID_FIELDS = ["图号", "件号", "Part No.", "Material No."]
FIELD_MAP = {
    "name": ["名称", "件名", "Description"],
    "quantity": ["数量", "Quantity"],
    "unit_price": ["单价", "Price"],
    "note": ["备注", "Remark"],
}
CUSTOMER_INFO_MAP = {
    "name": ["客户名称", "客户", "Client", "Customer"],
    "contact": ["联系方式", "联系人", "Contact"],
    "date": ["日期", "Date"],
    "vessel": ["船舶", "船名", "Vessel"],
    "project": ["项目", "工程", "Project"],
}

Source = Union[str, Path, bytes]


def _get_field(row: dict, names: list[str]) -> str:
    """First non-empty value among the aliases, as display text."""
    for name in names:
        text = cell_text(row.get(name))
        if text:
            return text
    return ""


def _row_quantity(row: dict) -> int:
    for name in FIELD_MAP["quantity"]:
        qty = to_int(row.get(name))
        if qty is not None:
            return max(1, qty)
    return 1


def _row_price(row: dict):
    for name in FIELD_MAP["unit_price"]:
        price = to_decimal(row.get(name))
        if price is not None:
            return max(price, ZERO)
    return ZERO


def _candidate_from_row(row: dict, identifier: str) -> ImportCandidate:
    return ImportCandidate(
        identifier=identifier,
        name=_get_field(row, FIELD_MAP["name"]) or None,
        quantity=_row_quantity(row),
        unit_price=_row_price(row),
        note=_get_field(row, FIELD_MAP["note"]),
    )


def _first_column(sheet: Sheet) -> list[str]:
    bounds = sheet.bounds
    if bounds is None:
        return []
    min_row, min_col, max_row, _ = bounds
    values = []
    for row in range(min_row, max_row + 1):
        cell = sheet.cell(row, min_col)
        if cell is not None and cell.text:
            values.append(cell.text)
    return values


# =============================================================================
# Candidate builders
# =============================================================================

def customer_list_candidates(sheets: Sequence[Sheet]) -> list[ImportCandidate]:
    """
    Candidates from a customer-supplied part list (first sheet only).

    Each row's identifier is its 图号, 标识码 or Part No. column, else
    its first value. A sheet with no data rows is read as a bare column
    of identifiers.

    Raises:
        NoValidData: no row yielded an identifier
    """
    if not sheets:
        raise NoValidData()
    sheet = sheets[0]

    candidates = []
    for row in sheet.records():
        identifier = _get_field(row, CUSTOMER_ID_FIELDS)
        if not identifier and row:
            identifier = cell_text(next(iter(row.values())))
        if identifier:
            candidates.append(_candidate_from_row(row, identifier))

    if not candidates:
        candidates = [ImportCandidate(identifier=v) for v in _first_column(sheet)]

    candidates = dedupe_candidates(candidates)
    if not candidates:
        raise NoValidData()
    logger.info(f"Customer list yielded {len(candidates)} part(s)")
    return candidates


def template_candidates(sheets: Sequence[Sheet]) -> tuple[Optional[CustomerInfo], list[ImportCandidate]]:
    """
    Customer info and parts rows from a quotation template (first sheet).

    Returns:
        (CustomerInfo or None if the template has no customer row, candidates)

    Raises:
        NoValidData: the template has no parts rows
    """
    records = sheets[0].records() if sheets else []

    customer = None
    for row in records:
        if _get_field(row, CUSTOMER_INFO_MAP["name"]):
            customer = CustomerInfo(
                **{key: _get_field(row, names) for key, names in CUSTOMER_INFO_MAP.items()}
            )
            if not customer.date:
                customer.date = date.today().isoformat()
            break

    candidates = []
    for row in records:
        identifier = _get_field(row, TEMPLATE_ID_FIELDS)
        if identifier:
            candidates.append(_candidate_from_row(row, identifier))

    if not candidates:
        raise NoValidData("No part rows found in the quotation template")
    return customer, candidates


def batch_candidates(text: str) -> list[ImportCandidate]:
    """One candidate per non-blank line of pasted text."""
    return [
        ImportCandidate(identifier=line.strip(), note=BATCH_NOTE)
        for line in (text or "").split("\n")
        if line.strip()
    ]


def file_candidates(
    source: Source,
    filename: Optional[str] = None,
    mode: str = "auto",
    degraded: bool = False,
    min_length: int = 3,
) -> tuple[Optional[CustomerInfo], list[ImportCandidate]]:
    """
    Extract candidates from a file according to the import mode.

    Returns:
        (customer info from a template, else None; candidates)
    """
    if mode not in IMPORT_MODES:
        raise ValueError(f"Unknown import mode: {mode}")

    name = filename or (Path(source).name if not isinstance(source, bytes) else None)
    kind = detect_file_type(name)

    if mode == "auto":
        return None, extract_from_file(source, name, degraded=degraded, min_length=min_length)

    if kind != "excel":
        raise ExtractionUnavailable(f"Import mode {mode!r} needs a spreadsheet, got {name}")

    sheets = read_workbook(source, name)
    if mode == "scan":
        return None, extract_from_sheets(sheets, min_length)
    if mode == "customer":
        return None, customer_list_candidates(sheets)
    return template_candidates(sheets)


# =============================================================================
# Session workflows
# =============================================================================

def import_file(
    session: QuoteSession,
    source: Source,
    filename: Optional[str] = None,
    mode: str = "auto",
    degraded: Optional[bool] = None,
    on_progress: Optional[Callable[[ReconcileProgress], None]] = None,
    cancel: Optional[CancelToken] = None,
) -> ReconcileResult:
    """
    Import a file into the session's selection.

    Args:
        session: Target session (catalog is read, selection replaced)
        source: Path or raw bytes
        filename: Original filename when source is bytes
        mode: auto, scan, customer or template
        degraded: Override the configured degraded-mode flag
        on_progress: Called after each reconciled chunk
        cancel: Optional cancellation token

    Raises:
        ExtractionFailed / ExtractionUnavailable: file could not be read
        NoValidData: customer list or template had no usable rows
        EmptyExtraction: nothing extracted from the file
    """
    if degraded is None:
        degraded = session.config.extraction.degraded_mode

    customer, candidates = file_candidates(
        source,
        filename,
        mode=mode,
        degraded=degraded,
        min_length=session.config.extraction.min_identifier_length,
    )
    if customer is not None:
        session.customer = customer

    return session.reconcile(candidates, on_progress=on_progress, cancel=cancel)


def import_batch(
    session: QuoteSession,
    text: str,
    on_progress: Optional[Callable[[ReconcileProgress], None]] = None,
) -> ReconcileResult:
    """Reconcile pasted identifiers (one per line) into the selection."""
    return session.reconcile(batch_candidates(text), on_progress=on_progress)


def import_catalog_file(session: QuoteSession, source: Source, filename: Optional[str] = None) -> int:
    """
    Merge a catalog spreadsheet (first sheet) into the session catalog.

    Returns:
        Number of parts added
    """
    sheets = read_workbook(source, filename)
    if not sheets:
        return 0
    return session.import_catalog_records(sheets[0].records())
