"""
Integration tests for the parts quotation pipeline.

These tests drive the CLI end-to-end: catalog import, matching, exports.
Run with: pytest harbor/parts_quote/tests/test_integration.py -v
"""

import csv
import sys

import pytest
from openpyxl import Workbook, load_workbook

from harbor.parts_quote.__main__ import main
from harbor.parts_quote.session import QuoteSession
from harbor.parts_quote.store import SqliteBlobStore


def _write_xlsx(path, rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    wb.save(path)
    return path


def _run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["parts_quote", *map(str, args)])
    main()


@pytest.fixture
def order(tmp_path):
    return _write_xlsx(tmp_path / "order.xlsx", [
        ["图号", "名称", "数量"],
        ["mv1100-02-002a", "侧车轴", 2],
        ["NJ313", "轴承", 4],
        ["UNKNOWN-1", None, 5],
    ])


@pytest.fixture
def catalog_file(tmp_path):
    return _write_xlsx(tmp_path / "catalog.xlsx", [
        ["标识码", "图号", "名称", "服务价（含税）", "出厂价（不含税）"],
        ["ZB0100", "NJ313", "轴承", 350, 200],
    ])


class TestCli:
    def test_full_run(self, monkeypatch, capsys, tmp_path, order, catalog_file):
        csv_path = tmp_path / "quote.csv"
        xlsx_path = tmp_path / "quote.xlsx"

        _run(
            monkeypatch,
            "--input", order,
            "--catalog", catalog_file,
            "--mode", "customer",
            "--output-csv", csv_path,
            "--output-xlsx", xlsx_path,
        )

        out = capsys.readouterr().out
        assert "Imported 1 new catalog part(s)" in out
        assert "Imported 3 line(s): 2 matched, 1 new" in out
        # 2 x 4407000 + 4 x 350
        assert "8,815,400.00" in out

        with open(csv_path, encoding="utf-8-sig", newline="") as f:
            rows = list(csv.reader(f))
        assert [r[2] for r in rows[1:4]] == ["ZB0001", "ZB0100", "NEW_UNKNOWN-1"]
        assert rows[4][8] == "8815400.00"

        ws = load_workbook(xlsx_path).active
        assert ws["C3"].value == "ZB0100"

    def test_price_option(self, monkeypatch, capsys, order, catalog_file):
        _run(
            monkeypatch,
            "--input", order,
            "--catalog", catalog_file,
            "--mode", "customer",
            "--price-option", "factory_price",
        )
        # 2 x 2762500 + 4 x 200
        assert "5,525,800.00" in capsys.readouterr().out

    def test_catalog_persisted_in_db(self, monkeypatch, capsys, tmp_path, order, catalog_file):
        db = tmp_path / "quotes.db"
        _run(monkeypatch, "--input", order, "--catalog", catalog_file, "--db", db, "--mode", "customer", "-q")
        assert capsys.readouterr().out == ""

        session = QuoteSession(store=SqliteBlobStore(db))
        session.load_catalog()
        assert [p.id for p in session.catalog] == ["ZB0001", "ZB0002", "ZB0100"]

    def test_progress_lines(self, monkeypatch, capsys, order):
        _run(monkeypatch, "--input", order, "--mode", "customer", "--chunk-size", "1")
        out = capsys.readouterr().out
        assert "1/3 (33%)" in out
        assert "3/3 (100%)" in out


class TestCliErrors:
    def test_missing_input(self, monkeypatch, capsys, tmp_path):
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "--input", tmp_path / "nope.xlsx")
        assert exc.value.code == 1
        assert "Input file not found" in capsys.readouterr().err

    def test_bad_chunk_size(self, monkeypatch, capsys, order):
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "--input", order, "--chunk-size", "0")
        assert exc.value.code == 1

    def test_unreadable_document(self, monkeypatch, capsys, tmp_path):
        pdf = tmp_path / "order.pdf"
        pdf.write_bytes(b"not really a pdf")
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "--input", pdf)
        assert exc.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_degraded_flag(self, monkeypatch, capsys, tmp_path):
        pdf = tmp_path / "order.pdf"
        pdf.write_bytes(b"not really a pdf")
        _run(monkeypatch, "--input", pdf, "--degraded")
        assert "Imported 6 line(s): 0 matched, 6 new" in capsys.readouterr().out

    def test_empty_customer_list(self, monkeypatch, capsys, tmp_path):
        path = _write_xlsx(tmp_path / "empty.xlsx", [])
        with pytest.raises(SystemExit):
            _run(monkeypatch, "--input", path, "--mode", "customer")
        assert "Error: No valid part data found" in capsys.readouterr().err
