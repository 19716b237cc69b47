"""
Tests for catalog import shapes, serialization, search, sort and export.

Run with: pytest harbor/parts_quote/tests/test_catalog.py -v
"""

import io

import pytest
from decimal import Decimal
from openpyxl import load_workbook

from harbor.parts_quote.catalog import (
    CATALOG_COLUMNS,
    catalog_from_json,
    catalog_to_json,
    export_catalog_xlsx,
    merge_parts,
    part_from_row,
    parts_from_records,
    sample_catalog,
    search_catalog,
    sort_catalog,
)
from harbor.parts_quote.models import PRICE_FIELDS, UNKNOWN_PART_NAME, CatalogPart
from harbor.parts_quote.sources import read_workbook


class TestImportShapes:
    def test_single_price_shape(self):
        row = {
            "编码": "C-100",
            "件号": "135-01-003A",
            "件名": "输入轴总成",
            "出厂价": 1200,
            "单位": "件",
            "备注与其他数据合并一起": "库存2",
            "日期": "2025-03-01",
        }
        part = part_from_row(row, 0)
        assert part.id == "C-100"
        assert part.drawing_number == "135-01-003A"
        assert part.name == "输入轴总成"
        for f in PRICE_FIELDS:
            assert getattr(part, f) == Decimal("1200")
        assert part.note == "单位:件; 库存2"
        assert part.date == "2025-03-01"

    def test_full_shape(self):
        row = {
            "标识码": "ZB0009",
            "图号": "NJ313",
            "名称": "轴承",
            "指导价（不含税）": "100",
            "出厂价（不含税）": 90,
            "服务价（不含税）": 120.5,
            "服务价（含税）": "¥1,360.17",
            "备注": "进口",
        }
        part = part_from_row(row, 4)
        assert part.id == "ZB0009"
        assert part.guide_price == Decimal("100")
        assert part.factory_price == Decimal("90")
        assert part.service_price == Decimal("120.5")
        assert part.service_price_taxed == Decimal("1360.17")
        assert part.guide_price_taxed == Decimal("0")
        assert part.note == "进口"

    def test_mixed_shape(self):
        row = {"图号": "6317N", "名称": "轴承", "出厂价": 50, "服务价（含税）": 80}
        part = part_from_row(row, 2)
        assert part.id == "IMPORT3"
        assert part.guide_price == Decimal("50")
        assert part.factory_price == Decimal("50")
        assert part.factory_price_taxed == Decimal("50")
        assert part.service_price_taxed == Decimal("80")
        assert part.service_price == Decimal("0")

    def test_missing_name_defaults(self):
        assert part_from_row({"标识码": "X"}, 0).name == UNKNOWN_PART_NAME

    def test_noise_rows_dropped(self):
        records = [
            {"图号": "A-1"},                          # no name, no price
            {"图号": "A-2", "出厂价（不含税）": 5},     # no name but priced
            {"图号": "A-3", "名称": "垫片"},            # named
        ]
        parts = parts_from_records(records)
        assert [p.drawing_number for p in parts] == ["A-2", "A-3"]
        assert [p.id for p in parts] == ["IMPORT2", "IMPORT3"]


class TestMerge:
    def test_existing_ids_kept(self):
        existing = sample_catalog()
        incoming = [
            CatalogPart(id="ZB0001", drawing_number="changed", name="changed"),
            CatalogPart(id="ZB0003", drawing_number="NJ313", name="轴承"),
        ]
        combined, added = merge_parts(existing, incoming)
        assert [p.id for p in combined] == ["ZB0001", "ZB0002", "ZB0003"]
        assert combined[0].drawing_number == "MV1100-02-002A"
        assert [p.id for p in added] == ["ZB0003"]


class TestSampleCatalog:
    def test_sample_parts(self):
        parts = sample_catalog()
        assert [p.id for p in parts] == ["ZB0001", "ZB0002"]
        assert parts[0].drawing_number == "MV1100-02-002A"
        assert parts[0].service_price_taxed == Decimal("4407000")
        assert parts[1].factory_price_taxed == Decimal("728059")


class TestSerialization:
    def test_json_keeps_decimals_and_text(self):
        parts = [CatalogPart(id="P1", drawing_number="D-1", name="侧车轴", service_price=Decimal("12.34"))]
        restored = catalog_from_json(catalog_to_json(parts))
        assert restored == parts

    @pytest.mark.parametrize("blob", [b"not json", b'{"id": "x"}', b'[{"name": "no id"}]', b"\xff\xfe"])
    def test_bad_blob(self, blob):
        with pytest.raises(ValueError):
            catalog_from_json(blob)


class TestSearchSort:
    @pytest.fixture
    def parts(self):
        return [
            CatalogPart(id="B2", drawing_number="HC400-01-000", name="输入轴部件", date="2025-03-02"),
            CatalogPart(id="A1", drawing_number="MV1100-02-002A", name="侧车轴", note="重点设备"),
            CatalogPart(id="C3", drawing_number="NJ313", name="轴承", service_price=Decimal("5")),
        ]

    def test_search_case_insensitive(self, parts):
        assert [p.id for p in search_catalog(parts, "mv1100")] == ["A1"]

    def test_search_fields(self, parts):
        assert [p.id for p in search_catalog(parts, "重点")] == ["A1"]
        assert [p.id for p in search_catalog(parts, "2025-03")] == ["B2"]
        assert [p.id for p in search_catalog(parts, "c3")] == ["C3"]

    def test_blank_search_returns_all(self, parts):
        assert len(search_catalog(parts, "  ")) == 3

    def test_sort(self, parts):
        assert [p.id for p in sort_catalog(parts, "id")] == ["A1", "B2", "C3"]
        assert [p.id for p in sort_catalog(parts, "service_price", descending=True)][0] == "C3"

    def test_sort_unknown_field(self, parts):
        with pytest.raises(ValueError):
            sort_catalog(parts, "color")


class TestExport:
    def test_export_round_trips_through_import(self):
        data = export_catalog_xlsx(sample_catalog())
        wb = load_workbook(io.BytesIO(data))
        ws = wb.active
        assert [c.value for c in ws[1]] == [label for _, label in CATALOG_COLUMNS]

        sheet = read_workbook(data, filename="catalog.xlsx")[0]
        parts = parts_from_records(sheet.records())
        assert [p.id for p in parts] == ["ZB0001", "ZB0002"]
        assert parts[0].service_price_taxed == Decimal("4407000")

    def test_export_empty(self):
        with pytest.raises(ValueError):
            export_catalog_xlsx([])
