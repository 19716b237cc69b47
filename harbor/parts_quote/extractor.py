"""
Candidate Extractor - pull part identifiers out of workbooks and free text.

Two modes:
- Tabular: every non-empty cell of every sheet, accepted when its text has
  the shape of a part identifier. Quantity comes from the cell to the right.
- Text: lines of PDF/Word text, tried against an ordered cascade of code
  patterns, with best-effort name and quantity recovery.

Both modes deduplicate by identifier (first occurrence wins) and never
raise on malformed content. Reading the file itself can fail; that is
surfaced as ExtractionFailed unless degraded mode is on.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Union

from openpyxl.utils import get_column_letter

from .errors import ExtractionFailed, ExtractionUnavailable
from .models import UNKNOWN_PART_NAME, ImportCandidate
from .sources import Sheet, detect_file_type, extract_document_text, read_workbook, to_int

logger = logging.getLogger(__name__)

MIN_IDENTIFIER_LENGTH = 3

# -----------------------------------------------------------------------------
# Tabular shapes. A cell is a candidate if its whole text matches any of these.
# re.ASCII keeps \d and \b to ASCII digits/word chars, so CJK text never
# counts as part of an identifier.
# -----------------------------------------------------------------------------
TABULAR_SHAPES = [
    re.compile(r"[A-Za-z0-9\-./]+", re.ASCII),           # alphanumeric with separators
    re.compile(r"[A-Za-z]+\d+", re.ASCII),               # NJ313
    re.compile(r"\d+[A-Za-z]+\d*", re.ASCII),            # 6317N, 32B5
    re.compile(r"[A-Za-z]\d+[A-Za-z]\d+", re.ASCII),     # M10X25
    re.compile(r"\d+[\-.]\d+[\-.]\d+[A-Za-z]?", re.ASCII),  # 135-01-003A
]

# -----------------------------------------------------------------------------
# Text patterns, in priority order. First accepted match on a line wins.
# -----------------------------------------------------------------------------
TEXT_PATTERNS = [
    ("STANDARD_CODE", re.compile(r"\b(\d+[\-\.]\d+[\-\.]\d+[A-Za-z]?)\b", re.ASCII)),
    ("SCREW_CODE", re.compile(r"\b([A-Z]\d+X\d+[A-Za-z0-9\-\.]+)\b", re.ASCII)),
    ("BEARING_CODE", re.compile(r"\b([A-Z]{1,3}\d{2,5}|\d{3,5}[A-Z]{1,2}\d{0,2})\b", re.ASCII)),
    ("COMPLEX_CODE", re.compile(r"\b(\d+[A-Za-z][\-\.]\d+[A-Za-z][\-\.]\d+[A-Za-z]?)\b", re.ASCII)),
    ("SPECIAL_CODE", re.compile(r"\b([A-Z]{1,3}[\-\.][A-Z]{1,3}\d+[•\.]\d+[•\.]\d+[A-Za-z]?)\b", re.ASCII)),
]
SPECIAL_FORMAT = "SPECIAL_FORMAT"
_FALLBACK_RUN = re.compile(r"\b([A-Z0-9]{5,})\b", re.ASCII)

# Line gate: list marker, or a run of uppercase alphanumerics
_LIST_MARKER = re.compile(r"^\s*(?:\d+\.|[-*•])")
_UPPER_RUN = re.compile(r"[A-Z0-9]{3,}", re.ASCII)

# Things that look like codes but are not parts
REJECT_PATTERNS = [
    re.compile(r"^\d{4}-\d{2}-\d{2}$"),   # date
    re.compile(r"^\d{5,}$", re.ASCII),    # long digit run (order numbers)
    re.compile(r"^1[3-9]\d{9}$", re.ASCII),  # mobile number
]
_PURE_DIGITS = re.compile(r"^\d+$", re.ASCII)

_NAME_AFTER_ID = re.compile(r"^\s+([^\d\s][^数量]*?)\s+(?:数量|[0-9]|$)")
_QUANTITY = re.compile(r"数量\s*[:：]?\s*(\d+)|数量[xX×]\s*(\d+)|(\d+)\s*[个件pcs]", re.IGNORECASE | re.ASCII)

# Placeholder batch used when extraction fails in degraded mode
DEGRADED_NOTE = "Degraded-mode placeholder"
DEGRADED_FALLBACK = (
    ("135-01-003A", "输入轴总成", 2),
    ("M10X25GB32.1-88", "普通螺栓", 10),
    ("6317N", "轴承", 4),
    ("FB-SC115•140•14D", "油封", 1),
    ("NJ313", "轴承", 5),
    ("135A-03A-016A", "轴套", 3),
)


def degraded_fallback() -> List[ImportCandidate]:
    """Fixed candidate set substituted for a document that failed to parse."""
    return [
        ImportCandidate(identifier=ident, name=name, quantity=qty, note=DEGRADED_NOTE)
        for ident, name, qty in DEGRADED_FALLBACK
    ]


# =============================================================================
# Tabular mode
# =============================================================================

def is_identifier_shape(text: str, min_length: int = MIN_IDENTIFIER_LENGTH) -> bool:
    """True if a cell's text looks like a part identifier."""
    text = text.strip()
    if len(text) < min_length or _PURE_DIGITS.match(text):
        return False
    return any(shape.fullmatch(text) for shape in TABULAR_SHAPES)


def _adjacent_quantity(sheet: Sheet, row: int, col: int) -> int:
    right = sheet.cell(row, col + 1)
    if right is None:
        return 1
    qty = to_int(right.value)
    if qty is None or qty < 1:
        return 1
    return qty


def extract_from_sheets(
    sheets: Iterable[Sheet],
    min_length: int = MIN_IDENTIFIER_LENGTH,
) -> List[ImportCandidate]:
    """
    Scan every non-empty cell of every sheet for identifier-shaped text.

    Args:
        sheets: Sheets in workbook order
        min_length: Minimum trimmed identifier length

    Returns:
        Candidates in scan order (row-major per sheet), deduplicated
    """
    candidates = []
    seen = set()

    for sheet in sheets:
        for row, col, cell in sheet.iter_cells():
            text = cell.text.strip()
            if text in seen or not is_identifier_shape(text, min_length):
                continue
            seen.add(text)
            candidates.append(ImportCandidate(
                identifier=text,
                quantity=_adjacent_quantity(sheet, row, col),
                note=f"Sheet: {sheet.name}, Cell: {get_column_letter(col)}{row}",
            ))

    logger.info(f"Tabular scan found {len(candidates)} candidate(s)")
    return candidates


# =============================================================================
# Text mode
# =============================================================================

def _is_rejected(identifier: str, min_length: int) -> bool:
    if any(p.match(identifier) for p in REJECT_PATTERNS):
        return True
    return len(identifier) < min_length or bool(_PURE_DIGITS.match(identifier))


def _line_is_candidate(line: str) -> bool:
    return bool(_LIST_MARKER.match(line) or _UPPER_RUN.search(line))


def _recover_name(line: str, identifier: str) -> str:
    tail = line[line.index(identifier) + len(identifier):]
    m = _NAME_AFTER_ID.match(tail)
    if m and m.group(1).strip():
        return m.group(1).strip()
    return UNKNOWN_PART_NAME


def _recover_quantity(line: str) -> int:
    m = _QUANTITY.search(line)
    if not m:
        return 1
    qty = int(m.group(1) or m.group(2) or m.group(3))
    return qty or 1


def _candidate_from_line(line: str, identifier: str, kind: str) -> ImportCandidate:
    return ImportCandidate(
        identifier=identifier,
        name=_recover_name(line, identifier),
        quantity=_recover_quantity(line),
        note=f"Extracted from document: {kind}",
    )


def extract_from_text(text: str, min_length: int = MIN_IDENTIFIER_LENGTH) -> List[ImportCandidate]:
    """
    Extract candidates from free text, one line at a time.

    A line is only considered if it starts with a list marker or holds a
    run of three or more uppercase letters/digits. Patterns are tried in
    TEXT_PATTERNS order; a match that is rejected (date, long number,
    phone number, too short) or already seen lets the next pattern try.
    If none is accepted, a run of five or more uppercase alphanumerics is
    taken as a SPECIAL_FORMAT candidate.

    Returns:
        Candidates in line order, deduplicated by identifier
    """
    candidates: List[ImportCandidate] = []
    seen = set()

    for line in (text or "").split("\n"):
        if not _line_is_candidate(line):
            continue

        found = False
        for kind, regex in TEXT_PATTERNS:
            m = regex.search(line)
            if not m:
                continue
            identifier = m.group(1)
            if _is_rejected(identifier, min_length) or identifier in seen:
                continue
            seen.add(identifier)
            candidates.append(_candidate_from_line(line, identifier, kind))
            found = True
            break

        if found:
            continue

        m = _FALLBACK_RUN.search(line)
        if not m or m.group(1) in seen:
            continue
        identifier = m.group(1)
        if _is_rejected(identifier, min_length):
            continue
        seen.add(identifier)
        candidates.append(_candidate_from_line(line, identifier, SPECIAL_FORMAT))

    logger.info(f"Text scan found {len(candidates)} candidate(s)")
    return candidates


# =============================================================================
# Entry points
# =============================================================================

def extract_candidates(
    source: Union[str, List[Sheet]],
    min_length: int = MIN_IDENTIFIER_LENGTH,
) -> List[ImportCandidate]:
    """Extract from already-read content: text, or a list of sheets."""
    if isinstance(source, str):
        return extract_from_text(source, min_length)
    return extract_from_sheets(source, min_length)


def extract_from_file(
    source: Union[str, Path, bytes],
    filename: Optional[str] = None,
    degraded: bool = False,
    min_length: int = MIN_IDENTIFIER_LENGTH,
) -> List[ImportCandidate]:
    """
    Read a spreadsheet, PDF or Word file and extract candidates from it.

    Args:
        source: Path or raw bytes
        filename: Original filename, required when source is bytes
        degraded: Substitute the placeholder batch if the file fails to parse
        min_length: Minimum identifier length

    Raises:
        ExtractionUnavailable: no reader for this file type
        ExtractionFailed: the file could not be parsed (degraded mode off)
    """
    name = filename or (Path(source).name if not isinstance(source, bytes) else None)
    kind = detect_file_type(name)

    try:
        if kind == "excel":
            return extract_from_sheets(read_workbook(source, name), min_length)
        if kind in ("pdf", "word"):
            return extract_from_text(extract_document_text(source, kind, name), min_length)
        raise ExtractionUnavailable(f"Unsupported file type: {name}")
    except ExtractionFailed as e:
        if not degraded:
            raise
        logger.warning(f"Extraction failed for {name}, using placeholder parts: {e}")
        return degraded_fallback()
