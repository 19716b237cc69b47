"""
Report Generator - Format the quotation for people and spreadsheets.

Produces console output for the CLI, and CSV / XLSX exports with the
quotation columns, a total row and a customer info block.
"""

import csv
import io
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence, TextIO

from .catalog import PRICE_LABELS
from .models import ZERO, CustomerInfo, QuoteStatistics, SelectionEntry
from .sources import write_workbook

QUOTE_COLUMNS = [
    "序号",
    "客户提供标识",
    "系统标识码",
    "图号",
    "名称",
    "价格类型",
    "单价",
    "数量",
    "总价(元)",
    "备注",
    "匹配方式",
]
QUOTE_COLUMN_WIDTHS = [6, 15, 12, 15, 20, 12, 12, 6, 12, 20, 10]
QUOTE_SHEET_NAME = "船用配件报价单"

LABEL_EXACT = "精确匹配"
LABEL_FUZZY = "模糊匹配"
LABEL_NEW = "新配件"
LABEL_CUSTOMER_PRICE = "客户指定价格"

CUSTOMER_LABELS = [
    ("name", "客户名称"),
    ("contact", "联系方式"),
    ("date", "日期"),
    ("vessel", "船舶"),
    ("project", "项目"),
]


def format_price(value) -> str:
    """Whole units with thousands separators: 3121625.4 -> '3,121,625'."""
    amount = Decimal(str(value or 0)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{amount:,}"


def format_total_price(value) -> str:
    """Two decimals with thousands separators: 8814000 -> '8,814,000.00'."""
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{amount:,.2f}"


def match_label(entry: SelectionEntry) -> str:
    if entry.is_new:
        return LABEL_NEW
    if entry.match_kind.needs_review:
        return LABEL_FUZZY
    return LABEL_EXACT


def price_type_label(entry: SelectionEntry, price_option: str) -> str:
    if entry.price_override:
        return LABEL_CUSTOMER_PRICE
    return PRICE_LABELS.get(price_option, price_option)


def quote_total(selection: Sequence[SelectionEntry], price_option: str) -> Decimal:
    return sum((e.line_total(price_option) for e in selection), ZERO)


def quotation_rows(selection: Sequence[SelectionEntry], price_option: str) -> list[dict]:
    """One row per entry, keyed by QUOTE_COLUMNS."""
    rows = []
    for index, entry in enumerate(selection, start=1):
        price = entry.effective_price(price_option)
        quantity = entry.quantity or 1
        rows.append({
            "序号": index,
            "客户提供标识": entry.imported_identifier,
            "系统标识码": entry.id,
            "图号": entry.drawing_number,
            "名称": entry.name,
            "价格类型": price_type_label(entry, price_option),
            "单价": price,
            "数量": quantity,
            "总价(元)": price * quantity,
            "备注": entry.imported_note or entry.note,
            "匹配方式": match_label(entry),
        })
    return rows


def export_csv(
    selection: Sequence[SelectionEntry],
    price_option: str,
    customer: CustomerInfo | None = None,
    output: TextIO | None = None,
) -> str:
    """
    Export the quotation to CSV format.

    Args:
        selection: Quotation entries in display order
        price_option: Price field used where an entry has no override
        customer: Customer block appended after the total row
        output: Optional file handle to write to

    Returns:
        CSV string (also writes to output if provided)
    """
    if not selection:
        raise ValueError("Quotation is empty, nothing to export")

    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow(QUOTE_COLUMNS)
    for row in quotation_rows(selection, price_option):
        values = []
        for col in QUOTE_COLUMNS:
            v = row[col]
            values.append(f"{v:.2f}" if isinstance(v, Decimal) else v)
        writer.writerow(values)

    total = quote_total(selection, price_option)
    writer.writerow(["总计:"] + [""] * 7 + [f"{total:.2f}"])

    customer = customer or CustomerInfo()
    writer.writerow([])
    writer.writerow(["客户信息:"])
    for field_name, label in CUSTOMER_LABELS:
        writer.writerow([f"{label}:", getattr(customer, field_name)])

    csv_content = buffer.getvalue()

    if output:
        output.write(csv_content)

    return csv_content


def export_xlsx(
    selection: Sequence[SelectionEntry],
    price_option: str,
    customer: CustomerInfo | None = None,
) -> bytes:
    """Export the quotation as .xlsx bytes: entries, total row, customer block."""
    if not selection:
        raise ValueError("Quotation is empty, nothing to export")

    rows = quotation_rows(selection, price_option)
    total_row = {col: "" for col in QUOTE_COLUMNS}
    total_row["名称"] = "合计"
    total_row["总价(元)"] = quote_total(selection, price_option)
    rows.append(total_row)

    customer = customer or CustomerInfo()
    rows.append({})
    rows.append({"序号": "客户信息", "客户提供标识": ""})
    for field_name, label in CUSTOMER_LABELS:
        rows.append({"序号": label, "客户提供标识": getattr(customer, field_name)})

    return write_workbook(rows, sheet_name=QUOTE_SHEET_NAME, column_widths=QUOTE_COLUMN_WIDTHS)


def format_console(
    selection: Sequence[SelectionEntry],
    price_option: str,
    stats: QuoteStatistics | None = None,
    customer: CustomerInfo | None = None,
) -> str:
    """
    Format the quotation for console display.

    Entries matched by a loose tier are flagged with '?' so they stand out
    for review; new parts with '+'.
    """
    if not selection:
        return "Quotation is empty.\n"

    lines = []
    if customer and customer.name:
        lines.append(f"\nCUSTOMER: {customer.name}")
        for field_name, label in CUSTOMER_LABELS[1:]:
            value = getattr(customer, field_name)
            if value:
                lines.append(f"  {field_name.capitalize():<8} {value}")

    lines.append(f"\nQUOTATION ({len(selection)} lines, price: {price_option})")
    lines.append("=" * 90)
    lines.append(f"  {'#':>3} {'IMPORTED':<18} {'CODE':<18} {'NAME':<16} {'QTY':>5} {'UNIT':>12} {'TOTAL':>12}")
    lines.append("-" * 90)
    for index, entry in enumerate(selection, start=1):
        marker = "+" if entry.is_new else ("?" if entry.match_kind.needs_review else " ")
        unit = entry.effective_price(price_option)
        lines.append(
            f"{marker} {index:>3} {entry.imported_identifier[:18]:<18} {entry.id[:18]:<18} "
            f"{entry.name[:16]:<16} {entry.quantity:>5} {format_price(unit):>12} "
            f"{format_price(entry.line_total(price_option)):>12}"
        )

    if stats is not None:
        lines.append("\n" + "=" * 90)
        lines.append("SUMMARY")
        lines.append(f"  Total price:    {format_total_price(stats.total_price)}")
        lines.append(f"  Total quantity: {stats.total_quantity}")
        lines.append(f"  Exact matches:  {stats.exact_match_count}")
        lines.append(f"  Fuzzy matches:  {stats.fuzzy_match_count}")
        lines.append(f"  New parts:      {stats.new_part_count}")
        lines.append("=" * 90)

    return "\n".join(lines)


def generate_report_filename(customer_name: str | None = None, extension: str = "csv") -> str:
    """
    Generate a filename for the quotation export.

    Returns:
        Filename like "船用配件报价_Acme_2026-01-08.csv"
    """
    date_str = datetime.now().strftime("%Y-%m-%d")
    return f"船用配件报价_{customer_name or '未命名'}_{date_str}.{extension}"
