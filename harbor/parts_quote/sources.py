"""
Source readers - turn uploaded files into sheets of cells or plain text.

Two services live here:
- Tabular reader/writer: workbooks (.xlsx via openpyxl, .csv via csv) as
  named sheets of addressable cells, and row dicts back into .xlsx bytes
- Document-to-text: PDF (pdfplumber) and Word (python-docx) to plain text

Everything downstream (candidate extraction, catalog import) only sees
Sheet objects and strings.
"""
import csv
import io
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import pdfplumber
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .errors import ExtractionFailed, ExtractionUnavailable

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes]

# Extensions per file family
FILE_TYPES = {
    "excel": (".xlsx", ".xlsm", ".xls", ".csv"),
    "pdf": (".pdf",),
    "word": (".doc", ".docx", ".rtf"),
}


# =============================================================================
# Utility Functions
# =============================================================================

def detect_file_type(filename: Optional[str]) -> str:
    """Classify a filename as excel, pdf, word or unknown."""
    if not filename:
        return "unknown"
    suffix = Path(filename).suffix.lower()
    for kind, suffixes in FILE_TYPES.items():
        if suffix in suffixes:
            return kind
    return "unknown"


def cell_text(value: Any) -> str:
    """Render a cell value the way a spreadsheet would display it."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.hour == value.minute == value.second == 0:
            return value.strftime("%Y-%m-%d")
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def to_int(value: Any) -> Optional[int]:
    """Parse an integer quantity, truncating decimals. None if not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    m = re.fullmatch(r"\s*([+-]?\d+)(?:\.\d*)?\s*", str(value))
    if m:
        return int(m.group(1))
    return None


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert value to Decimal, handling currency symbols and separators."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    cleaned = re.sub(r"[$¥￥,\s]", "", str(value))
    try:
        number = Decimal(cleaned)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _source_name(source: Source, filename: Optional[str]) -> str:
    if filename:
        return filename
    if isinstance(source, (str, Path)):
        return Path(source).name
    return "<upload>"


def _open_binary(source: Source):
    """Return something the readers can open: a path or a BytesIO."""
    if isinstance(source, bytes):
        return io.BytesIO(source)
    p = Path(source)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {source}")
    return p


# =============================================================================
# Tabular reader
# =============================================================================

@dataclass
class Cell:
    """Raw value plus its displayed text."""
    value: Any
    text: str


@dataclass
class Sheet:
    """
    One named worksheet as a sparse grid of cells.

    Rows and columns are 1-based, like spreadsheet addresses.
    """
    name: str
    cells: Dict[Tuple[int, int], Cell] = field(default_factory=dict)

    @property
    def bounds(self) -> Optional[Tuple[int, int, int, int]]:
        """(min_row, min_col, max_row, max_col), or None for an empty sheet."""
        if not self.cells:
            return None
        rows = [r for r, _ in self.cells]
        cols = [c for _, c in self.cells]
        return min(rows), min(cols), max(rows), max(cols)

    def cell(self, row: int, col: int) -> Optional[Cell]:
        return self.cells.get((row, col))

    def iter_cells(self) -> Iterator[Tuple[int, int, Cell]]:
        """Yield non-empty cells row by row, left to right."""
        for (row, col) in sorted(self.cells):
            yield row, col, self.cells[(row, col)]

    def rows(self) -> List[List[Any]]:
        """Dense grid of raw values covering the sheet's bounds."""
        bounds = self.bounds
        if bounds is None:
            return []
        min_row, min_col, max_row, max_col = bounds
        grid = []
        for r in range(min_row, max_row + 1):
            grid.append([
                self.cells[(r, c)].value if (r, c) in self.cells else None
                for c in range(min_col, max_col + 1)
            ])
        return grid

    def records(self) -> List[Dict[str, Any]]:
        """
        Rows keyed by header, using the first non-empty row as headers.

        Rows with no values are skipped. Columns without a header are
        named Column_<n>.
        """
        grid = self.rows()
        if not grid:
            return []
        headers = [
            cell_text(h) or f"Column_{i}" for i, h in enumerate(grid[0], start=1)
        ]
        records = []
        for row in grid[1:]:
            if all(v is None or cell_text(v) == "" for v in row):
                continue
            record = {}
            for header, value in zip(headers, row):
                if value is not None and cell_text(value) != "":
                    record[header] = value
            records.append(record)
        return records


def _read_xlsx(source: Source, name: str) -> List[Sheet]:
    try:
        wb = load_workbook(_open_binary(source), data_only=True)
    except FileNotFoundError:
        raise
    except Exception as e:
        raise ExtractionFailed(f"Failed to read workbook {name}: {e}") from e

    sheets = []
    try:
        for ws in wb.worksheets:
            sheet = Sheet(name=ws.title)
            for row in ws.iter_rows():
                for c in row:
                    if c.value is None:
                        continue
                    text = cell_text(c.value)
                    if text == "":
                        continue
                    sheet.cells[(c.row, c.column)] = Cell(value=c.value, text=text)
            sheets.append(sheet)
    finally:
        wb.close()
    return sheets


def _read_csv(source: Source, name: str) -> List[Sheet]:
    if isinstance(source, bytes):
        raw = source
    else:
        p = Path(source)
        if not p.exists():
            raise FileNotFoundError(f"File not found: {source}")
        raw = p.read_bytes()

    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        content = raw.decode("gb18030", errors="replace")

    sample = content[:4096]
    try:
        dialect = csv.Sniffer().sniff(sample)
    except csv.Error:
        dialect = csv.excel

    sheet = Sheet(name=Path(name).stem or "Sheet1")
    try:
        for r, row in enumerate(csv.reader(io.StringIO(content), dialect), start=1):
            for c, value in enumerate(row, start=1):
                text = value.strip()
                if text:
                    sheet.cells[(r, c)] = Cell(value=text, text=text)
    except csv.Error as e:
        raise ExtractionFailed(f"Failed to parse CSV {name}: {e}") from e
    return [sheet]


def read_workbook(source: Source, filename: Optional[str] = None) -> List[Sheet]:
    """
    Read a spreadsheet into named sheets.

    Args:
        source: Path to the file, or its raw bytes
        filename: Original filename when source is bytes (used for the type)

    Returns:
        Sheets in workbook order

    Raises:
        ExtractionUnavailable: format has no reader (e.g. legacy .xls)
        ExtractionFailed: the file could not be parsed
    """
    name = _source_name(source, filename)
    suffix = Path(name).suffix.lower()

    if suffix == ".csv":
        return _read_csv(source, name)
    if suffix in (".xlsx", ".xlsm") or (suffix == "" and isinstance(source, bytes)):
        return _read_xlsx(source, name)
    if suffix == ".xls":
        raise ExtractionUnavailable(f"Legacy .xls workbooks are not supported: {name}")
    raise ExtractionUnavailable(f"Unsupported spreadsheet type: {suffix or name}")


# =============================================================================
# Tabular writer
# =============================================================================

def write_workbook(
    rows: List[Dict[str, Any]],
    sheet_name: str = "Sheet1",
    column_widths: Optional[List[int]] = None,
) -> bytes:
    """
    Write row dicts to a single-sheet .xlsx and return its bytes.

    Headers are the union of row keys in first-seen order; the header
    row is bold.
    """
    headers: List[str] = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)

    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name[:31]

    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for row in rows:
        values = []
        for h in headers:
            v = row.get(h)
            values.append(float(v) if isinstance(v, Decimal) else v)
        ws.append(values)

    if column_widths:
        for idx, width in enumerate(column_widths, start=1):
            ws.column_dimensions[get_column_letter(idx)].width = width

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


# =============================================================================
# Document-to-text
# =============================================================================

def extract_text_from_pdf(source: Source) -> str:
    """Extract text from a PDF, one line per text line, pages in order."""
    text_parts = []
    try:
        with pdfplumber.open(_open_binary(source)) as pdf:
            for page in pdf.pages:
                text = page.extract_text()
                if text:
                    text_parts.append(text.strip())
    except FileNotFoundError:
        raise
    except Exception as e:
        logger.error(f"Error parsing PDF {_source_name(source, None)}: {e}")
        raise ExtractionFailed(f"Failed to parse PDF: {e}") from e

    return "\n".join(text_parts)


def extract_text_from_docx(source: Source) -> str:
    """Extract text from a DOCX file: paragraphs, then table rows."""
    from docx import Document as DocxDocument

    text_parts = []
    try:
        doc = DocxDocument(_open_binary(source))
        for para in doc.paragraphs:
            if para.text.strip():
                text_parts.append(para.text.strip())
        for table in doc.tables:
            for row in table.rows:
                row_text = "  ".join(
                    cell.text.strip() for cell in row.cells if cell.text.strip()
                )
                if row_text:
                    text_parts.append(row_text)
    except FileNotFoundError:
        raise
    except Exception as e:
        logger.error(f"Error parsing DOCX {_source_name(source, None)}: {e}")
        raise ExtractionFailed(f"Failed to parse Word document: {e}") from e

    return "\n".join(text_parts)


def extract_document_text(
    source: Source,
    kind: str,
    filename: Optional[str] = None,
) -> str:
    """
    Extract plain text from a PDF or Word document.

    Args:
        source: Path or raw bytes
        kind: "pdf" or "word"
        filename: Original filename when source is bytes

    Raises:
        ExtractionUnavailable: no reader for this kind or Word variant
        ExtractionFailed: the reader failed on this document
    """
    name = _source_name(source, filename)

    if kind == "pdf":
        return extract_text_from_pdf(source)

    if kind == "word":
        suffix = Path(name).suffix.lower()
        if suffix in (".doc", ".rtf"):
            raise ExtractionUnavailable(f"Cannot read {suffix} documents, save as .docx: {name}")
        return extract_text_from_docx(source)

    raise ExtractionUnavailable(f"Unsupported document kind: {kind}")
