"""
Tests for quotation formatting and exports.

Run with: pytest harbor/parts_quote/tests/test_report.py -v
"""

import csv
import io

import pytest
from decimal import Decimal
from openpyxl import load_workbook

from harbor.parts_quote.models import CustomerInfo, MatchKind, QuoteStatistics, SelectionEntry
from harbor.parts_quote.report import (
    QUOTE_COLUMNS,
    export_csv,
    export_xlsx,
    format_console,
    format_price,
    format_total_price,
    generate_report_filename,
    match_label,
    price_type_label,
    quotation_rows,
    quote_total,
)


@pytest.fixture
def selection():
    """Exact match, fuzzy match and a new part with a customer price."""
    return [
        SelectionEntry(
            id="ZB0002", drawing_number="HC400-01-000", name="输入轴部件",
            service_price_taxed=Decimal("1027848"), factory_price=Decimal("810000"),
            imported_identifier="HC400-01-000", match_kind=MatchKind.EXACT,
        ),
        SelectionEntry(
            id="ZB0001", drawing_number="MV1100-02-002A", name="侧车轴",
            service_price_taxed=Decimal("4407000"), note="重点设备",
            imported_identifier="mv1100-02-002a", quantity=2,
            match_kind=MatchKind.CASE_INSENSITIVE,
        ),
        SelectionEntry(
            id="NEW_X-9", drawing_number="X-9", name="Unknown part",
            imported_identifier="X-9", quantity=3, price_override=Decimal("12.5"),
            imported_note="客户报价", is_new=True,
        ),
    ]


@pytest.fixture
def customer():
    return CustomerInfo(name="中远海运", contact="张工 13800000000", date="2025-03-15", vessel="COSCO STAR")


class TestFormatting:
    @pytest.mark.parametrize("value,expected", [
        (Decimal("3121625.4"), "3,121,625"),
        (Decimal("0.5"), "1"),
        (None, "0"),
        (1027848, "1,027,848"),
    ])
    def test_format_price(self, value, expected):
        assert format_price(value) == expected

    def test_format_total_price(self):
        assert format_total_price(Decimal("8814000")) == "8,814,000.00"
        assert format_total_price(Decimal("0.005")) == "0.01"

    def test_labels(self, selection):
        assert [match_label(e) for e in selection] == ["精确匹配", "模糊匹配", "新配件"]
        assert price_type_label(selection[0], "service_price_taxed") == "服务价（含税）"
        assert price_type_label(selection[2], "service_price_taxed") == "客户指定价格"


class TestQuotationRows:
    def test_rows(self, selection):
        rows = quotation_rows(selection, "service_price_taxed")
        assert [r["序号"] for r in rows] == [1, 2, 3]
        assert rows[1]["客户提供标识"] == "mv1100-02-002a"
        assert rows[1]["总价(元)"] == Decimal("8814000")
        assert rows[1]["备注"] == "重点设备"
        assert rows[2]["单价"] == Decimal("12.5")
        assert rows[2]["备注"] == "客户报价"

    def test_total_follows_price_option(self, selection):
        assert quote_total(selection, "service_price_taxed") == Decimal("9841885.5")
        assert quote_total(selection, "factory_price") == Decimal("810037.5")


class TestExportCsv:
    def test_layout(self, selection, customer):
        content = export_csv(selection, "service_price_taxed", customer)
        rows = list(csv.reader(io.StringIO(content)))

        assert rows[0] == QUOTE_COLUMNS
        assert rows[1][2] == "ZB0002"
        assert rows[1][6] == "1027848.00"
        assert rows[2][10] == "模糊匹配"
        assert rows[4][0] == "总计:"
        assert rows[4][8] == "9841885.50"
        assert rows[5] == []
        assert rows[6] == ["客户信息:"]
        assert rows[7] == ["客户名称:", "中远海运"]
        assert rows[10] == ["船舶:", "COSCO STAR"]
        assert rows[11] == ["项目:", ""]

    def test_writes_to_output(self, selection):
        out = io.StringIO()
        content = export_csv(selection, "service_price_taxed", output=out)
        assert out.getvalue() == content

    def test_empty_selection(self):
        with pytest.raises(ValueError):
            export_csv([], "service_price_taxed")


class TestExportXlsx:
    def test_sheet(self, selection, customer):
        data = export_xlsx(selection, "service_price_taxed", customer)
        ws = load_workbook(io.BytesIO(data)).active

        assert ws.title == "船用配件报价单"
        assert [c.value for c in ws[1]] == QUOTE_COLUMNS
        assert ws["C2"].value == "ZB0002"
        assert ws["I3"].value == 8814000
        assert ws["E5"].value == "合计"
        assert ws["I5"].value == 9841885.5
        assert ws["A7"].value == "客户信息"
        assert ws["A8"].value == "客户名称"
        assert ws["B8"].value == "中远海运"

    def test_empty_selection(self):
        with pytest.raises(ValueError):
            export_xlsx([], "service_price_taxed")


class TestConsole:
    def test_markers_and_summary(self, selection, customer):
        stats = QuoteStatistics(
            total_price=Decimal("9841885.5"), total_quantity=6,
            exact_match_count=1, fuzzy_match_count=1, new_part_count=1,
        )
        output = format_console(selection, "service_price_taxed", stats=stats, customer=customer)

        assert "CUSTOMER: 中远海运" in output
        assert "QUOTATION (3 lines" in output
        lines = output.split("\n")
        assert any(line.startswith("?") and "ZB0001" in line for line in lines)
        assert any(line.startswith("+") and "NEW_X-9" in line for line in lines)
        assert "8,814,000" in output
        assert "9,841,885.50" in output

    def test_empty(self):
        assert format_console([], "service_price_taxed") == "Quotation is empty.\n"


class TestReportFilename:
    def test_filename(self):
        name = generate_report_filename("中远海运", "xlsx")
        assert name.startswith("船用配件报价_中远海运_")
        assert name.endswith(".xlsx")
        assert "未命名" in generate_report_filename()
