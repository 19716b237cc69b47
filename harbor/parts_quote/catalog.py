"""
Catalog I/O - import, persist, search and export catalog parts.

Spreadsheet imports come in three shapes, detected per row:

| Shape        | Detected by               | Prices                         |
|--------------|---------------------------|--------------------------------|
| single price | 编码 + 出厂价              | 出厂价 copied to all six       |
| full         | 标识码                     | six labelled price columns     |
| mixed        | anything else             | 出厂价 where present, else own |

Rows without an id get IMPORT<n> (1-based row index). Rows with no name
and no ex-factory price are dropped as noise.
"""

import json
import logging
from dataclasses import asdict
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from .models import PRICE_FIELDS, UNKNOWN_PART_NAME, ZERO, CatalogPart
from .sources import Sheet, cell_text, to_decimal, write_workbook

logger = logging.getLogger(__name__)

# Catalog spreadsheet columns, in export order
CATALOG_COLUMNS = [
    ("date", "日期"),
    ("id", "标识码"),
    ("drawing_number", "图号"),
    ("name", "名称"),
    ("guide_price", "指导价（不含税）"),
    ("factory_price", "出厂价（不含税）"),
    ("service_price", "服务价（不含税）"),
    ("guide_price_taxed", "指导价（含税）"),
    ("factory_price_taxed", "出厂价（含税）"),
    ("service_price_taxed", "服务价（含税）"),
    ("note", "备注"),
]
COLUMN_LABELS = dict(CATALOG_COLUMNS)
PRICE_LABELS = {f: COLUMN_LABELS[f] for f in PRICE_FIELDS}

EXPORT_SHEET_NAME = "船用配件数据"
SEARCH_FIELDS = ("date", "name", "id", "drawing_number", "note")

# Single-price sheets
SINGLE_CODE = "编码"
SINGLE_PRICE = "出厂价"
SINGLE_DRAWING = "件号"
SINGLE_NAME = "件名"
SINGLE_UNIT = "单位"
SINGLE_REMARK = "备注与其他数据合并一起"

SAMPLE_CATALOG = [
    {
        "date": "2025-03-01",
        "id": "ZB0001",
        "drawing_number": "MV1100-02-002A",
        "name": "侧车轴",
        "guide_price": 3250000,
        "factory_price": 2762500,
        "service_price": 3900000,
        "guide_price_taxed": 3672500,
        "factory_price_taxed": 3121625,
        "service_price_taxed": 4407000,
        "note": "重点设备",
    },
    {
        "date": "2025-03-02",
        "id": "ZB0002",
        "drawing_number": "HC400-01-000",
        "name": "输入轴部件",
        "guide_price": 758000,
        "factory_price": 644300,
        "service_price": 909600,
        "guide_price_taxed": 856540,
        "factory_price_taxed": 728059,
        "service_price_taxed": 1027848,
        "note": "",
    },
]


def _get_field(row: dict, *names: str) -> Any:
    """First non-empty value among the given column names."""
    for name in names:
        value = row.get(name)
        if value is not None and cell_text(value) != "":
            return value
    return None


def _text(row: dict, *names: str, default: str = "") -> str:
    value = _get_field(row, *names)
    return cell_text(value) if value is not None else default


def _price(value: Any) -> Decimal:
    parsed = to_decimal(value)
    return parsed if parsed is not None else ZERO


def _labelled_prices(row: dict) -> dict:
    return {f: _price(row.get(PRICE_LABELS[f])) for f in PRICE_FIELDS}


def _single_remark(row: dict) -> str:
    parts = []
    unit = _text(row, SINGLE_UNIT)
    if unit:
        parts.append(f"单位:{unit}")
    remark = _text(row, SINGLE_REMARK)
    if remark:
        parts.append(remark)
    return "; ".join(parts)


def part_from_row(row: dict, index: int) -> CatalogPart:
    """
    Build a catalog part from one spreadsheet row.

    Args:
        row: Header-keyed cell values
        index: 0-based row index, used for generated ids

    Returns:
        CatalogPart (not yet filtered for noise)
    """
    fallback_id = f"IMPORT{index + 1}"
    date = _text(row, "日期")

    if _get_field(row, SINGLE_CODE) is not None and SINGLE_PRICE in row:
        price = _price(row.get(SINGLE_PRICE))
        return CatalogPart(
            id=_text(row, SINGLE_CODE, default=fallback_id),
            drawing_number=_text(row, SINGLE_DRAWING),
            name=_text(row, SINGLE_NAME, default=UNKNOWN_PART_NAME),
            **{f: price for f in PRICE_FIELDS},
            note=_single_remark(row),
            date=date,
        )

    if _get_field(row, "标识码") is not None:
        return CatalogPart(
            id=_text(row, "标识码"),
            drawing_number=_text(row, "图号"),
            name=_text(row, "名称", default=UNKNOWN_PART_NAME),
            **_labelled_prices(row),
            note=_text(row, "备注"),
            date=date,
        )

    prices = _labelled_prices(row)
    single = _price(row.get(SINGLE_PRICE))
    if single:
        for f in ("guide_price", "factory_price", "factory_price_taxed"):
            prices[f] = single
    return CatalogPart(
        id=_text(row, "标识码", SINGLE_CODE, default=fallback_id),
        drawing_number=_text(row, "图号", SINGLE_DRAWING),
        name=_text(row, "名称", SINGLE_NAME, default=UNKNOWN_PART_NAME),
        **prices,
        note=_text(row, "备注") or _single_remark(row),
        date=date,
    )


def parts_from_records(records: Sequence[dict]) -> list[CatalogPart]:
    """Convert spreadsheet rows to parts, dropping unnamed zero-price rows."""
    parts = []
    for index, row in enumerate(records):
        part = part_from_row(row, index)
        if part.name == UNKNOWN_PART_NAME and part.factory_price <= 0:
            continue
        parts.append(part)
    return parts


def parts_from_sheet(sheet: Sheet) -> list[CatalogPart]:
    return parts_from_records(sheet.records())


def merge_parts(
    existing: Sequence[CatalogPart],
    incoming: Iterable[CatalogPart],
) -> tuple[list[CatalogPart], list[CatalogPart]]:
    """
    Append incoming parts whose id is not already in the catalog.

    Returns:
        (combined catalog, parts actually added)
    """
    existing_ids = {p.id for p in existing}
    added = [p for p in incoming if p.id not in existing_ids]
    return list(existing) + added, added


def sample_catalog() -> list[CatalogPart]:
    """The two-part catalog used when nothing has been stored yet."""
    return [part_from_dict(d) for d in SAMPLE_CATALOG]


# =============================================================================
# Serialization
# =============================================================================

def part_to_dict(part: CatalogPart) -> dict:
    data = asdict(part)
    for f in PRICE_FIELDS:
        data[f] = str(data[f])
    return data


def part_from_dict(data: dict) -> CatalogPart:
    return CatalogPart(
        id=str(data["id"]),
        drawing_number=str(data.get("drawing_number", "")),
        name=str(data.get("name", "")),
        **{f: _price(data.get(f)) for f in PRICE_FIELDS},
        note=str(data.get("note", "")),
        date=str(data.get("date", "")),
    )


def catalog_to_json(parts: Sequence[CatalogPart]) -> bytes:
    """Serialize the catalog for the blob store."""
    return json.dumps([part_to_dict(p) for p in parts], ensure_ascii=False).encode("utf-8")


def catalog_from_json(blob: bytes) -> list[CatalogPart]:
    """
    Deserialize a stored catalog.

    Raises:
        ValueError: blob is not a JSON list of part objects
    """
    try:
        data = json.loads(blob.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Stored catalog is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise ValueError("Stored catalog must be a list")
    try:
        return [part_from_dict(d) for d in data]
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Stored catalog has a malformed part: {e}") from e


# =============================================================================
# Search / sort / export
# =============================================================================

def search_catalog(parts: Sequence[CatalogPart], term: Optional[str]) -> list[CatalogPart]:
    """Case-insensitive substring search over date, name, id, drawing number, note."""
    if not term or not term.strip():
        return list(parts)
    lower = term.lower()
    return [
        p for p in parts
        if any(lower in str(getattr(p, f)).lower() for f in SEARCH_FIELDS if getattr(p, f))
    ]


def sort_catalog(
    parts: Sequence[CatalogPart],
    key: Optional[str],
    descending: bool = False,
) -> list[CatalogPart]:
    """Stable sort by any CatalogPart field; no key keeps catalog order."""
    if not key:
        return list(parts)
    if key not in COLUMN_LABELS:
        raise ValueError(f"Unknown sort field: {key}")
    return sorted(parts, key=lambda p: getattr(p, key), reverse=descending)


def catalog_export_rows(parts: Sequence[CatalogPart]) -> list[dict]:
    """Rows keyed by the catalog column labels, re-importable as-is."""
    rows = []
    for part in parts:
        rows.append({label: getattr(part, f) for f, label in CATALOG_COLUMNS})
    return rows


def export_catalog_xlsx(parts: Sequence[CatalogPart]) -> bytes:
    """
    Export the catalog as an .xlsx workbook.

    Raises:
        ValueError: the catalog is empty
    """
    if not parts:
        raise ValueError("Catalog is empty, nothing to export")
    return write_workbook(
        catalog_export_rows(parts),
        sheet_name=EXPORT_SHEET_NAME,
        column_widths=[12, 12, 20, 20, 16, 16, 16, 16, 16, 16, 24],
    )
