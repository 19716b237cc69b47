"""
Tests for QuoteSession: catalog persistence and selection editing.

Run with: pytest harbor/parts_quote/tests/test_session.py -v
"""

import pytest
from decimal import Decimal

from harbor.parts_quote.catalog import catalog_to_json
from harbor.parts_quote.errors import EmptyExtraction, EntryNotFound
from harbor.parts_quote.models import CatalogPart, ImportCandidate, MatchKind
from harbor.parts_quote.reconcile import CancelToken
from harbor.parts_quote.session import QuoteSession
from harbor.parts_quote.store import InMemoryBlobStore


@pytest.fixture
def session():
    s = QuoteSession(store=InMemoryBlobStore())
    s.load_catalog()
    return s


@pytest.fixture
def quoted(session):
    """Session with one fuzzy match, one exact match and one new part selected."""
    session.reconcile([
        ImportCandidate(identifier="mv1100-02-002a", quantity=2),
        ImportCandidate(identifier="HC400-01-000"),
        ImportCandidate(identifier="UNKNOWN-1", quantity=5),
    ])
    return session


class TestCatalogLoading:
    def test_empty_store_loads_sample(self, session):
        assert [p.id for p in session.catalog] == ["ZB0001", "ZB0002"]
        assert session.store.get("shipPartsData") is not None

    def test_stored_catalog_is_used(self):
        store = InMemoryBlobStore()
        store.set("shipPartsData", catalog_to_json([
            CatalogPart(id="P1", drawing_number="D-1", name="one", factory_price=Decimal("10.5")),
        ]))
        session = QuoteSession(store=store)
        session.load_catalog()
        assert [p.id for p in session.catalog] == ["P1"]
        assert session.catalog[0].factory_price == Decimal("10.5")

    def test_corrupt_store_falls_back_to_sample(self):
        store = InMemoryBlobStore({"shipPartsData": b"{not json"})
        session = QuoteSession(store=store)
        session.load_catalog()
        assert [p.id for p in session.catalog] == ["ZB0001", "ZB0002"]

    def test_cleared_catalog_stays_empty(self, session):
        session.clear_catalog()
        reloaded = QuoteSession(store=session.store)
        reloaded.load_catalog()
        assert reloaded.catalog == []


class TestCatalogImport:
    def test_merge_skips_existing_ids(self, session):
        added = session.import_parts([
            CatalogPart(id="ZB0001", drawing_number="DUP", name="dup"),
            CatalogPart(id="ZB0003", drawing_number="NJ313", name="轴承"),
        ])
        assert added == 1
        assert [p.id for p in session.catalog] == ["ZB0001", "ZB0002", "ZB0003"]
        assert session.catalog[0].drawing_number == "MV1100-02-002A"

    def test_import_is_persisted(self, session):
        session.import_catalog_records([{"标识码": "ZB0009", "名称": "油封", "图号": "FB-1"}])
        reloaded = QuoteSession(store=session.store)
        reloaded.load_catalog()
        assert "ZB0009" in [p.id for p in reloaded.catalog]

    def test_clear_empties_selection(self, quoted):
        quoted.clear_catalog()
        assert quoted.catalog == []
        assert quoted.selection == []


class TestReconcile:
    def test_replaces_selection(self, quoted):
        assert [e.id for e in quoted.selection] == ["ZB0001", "ZB0002", "NEW_UNKNOWN-1"]
        quoted.reconcile([ImportCandidate(identifier="HC400-01-000")])
        assert [e.id for e in quoted.selection] == ["ZB0002"]

    def test_empty_batch_keeps_selection(self, quoted):
        with pytest.raises(EmptyExtraction):
            quoted.reconcile([])
        assert len(quoted.selection) == 3

    def test_cancelled_run_keeps_selection(self, quoted):
        token = CancelToken()
        token.cancel()
        result = quoted.reconcile([ImportCandidate(identifier="X1")], cancel=token)
        assert result.cancelled
        assert len(quoted.selection) == 3

    def test_uses_configured_chunk_size(self, session):
        session.config.reconcile.chunk_size = 1
        events = []
        session.reconcile(
            [ImportCandidate(identifier=f"X{i}") for i in range(3)],
            on_progress=events.append,
        )
        assert len(events) == 3


class TestSelectionEditing:
    def test_toggle_adds_and_removes(self, session):
        assert session.toggle_part("ZB0002") is True
        assert session.selection[0].quantity == 1
        assert session.toggle_part("ZB0002") is False
        assert session.selection == []

    def test_toggle_unknown_part(self, session):
        with pytest.raises(EntryNotFound):
            session.toggle_part("NOPE")

    @pytest.mark.parametrize("value,expected", [
        (3, 3), ("4", 4), (0, 1), (-2, 1), ("abc", 1), (None, 1),
        ("2.5", 2), (2.9, 2), (float("inf"), 1), (float("-inf"), 1), (float("nan"), 1),
    ])
    def test_set_quantity(self, quoted, value, expected):
        assert quoted.set_quantity("ZB0002", value).quantity == expected

    @pytest.mark.parametrize("value,expected", [
        ("99.5", Decimal("99.5")),
        (100, Decimal("100")),
        ("abc", Decimal("0")),
        (-5, Decimal("0")),
        (None, Decimal("0")),
    ])
    def test_set_price_override(self, quoted, value, expected):
        assert quoted.set_price_override("ZB0002", value).price_override == expected

    def test_unknown_entry(self, quoted):
        with pytest.raises(EntryNotFound):
            quoted.set_quantity("NOPE", 2)
        with pytest.raises(KeyError):
            quoted.remove_entry("NOPE")

    def test_remove_and_clear(self, quoted):
        quoted.remove_entry("ZB0002")
        assert [e.id for e in quoted.selection] == ["ZB0001", "NEW_UNKNOWN-1"]
        quoted.clear_selection()
        assert quoted.selection == []


class TestDiscount:
    def test_discount_uses_effective_price(self, quoted):
        quoted.set_price_override("NEW_UNKNOWN-1", "10.01")
        quoted.apply_discount(90)

        by_id = {e.id: e for e in quoted.selection}
        assert by_id["ZB0001"].price_override == Decimal("3966300.00")
        assert by_id["ZB0002"].price_override == Decimal("925063.20")
        assert by_id["NEW_UNKNOWN-1"].price_override == Decimal("9.01")

    def test_discount_follows_price_option(self, quoted):
        quoted.set_price_option("factory_price")
        quoted.apply_discount("50")
        assert quoted.get_entry("ZB0001").price_override == Decimal("1381250.00")

    @pytest.mark.parametrize("percent", [0, -10, "abc", "nan"])
    def test_invalid_discount(self, quoted, percent):
        with pytest.raises(ValueError):
            quoted.apply_discount(percent)


class TestReview:
    def test_pending_review(self, quoted):
        pending = quoted.pending_review()
        assert [e.id for e in pending] == ["ZB0001"]
        assert pending[0].match_kind == MatchKind.CASE_INSENSITIVE

    def test_confirm_review(self, quoted):
        assert quoted.confirm_review() == 1
        assert all(e.human_reviewed for e in quoted.selection)
        assert quoted.pending_review() == []


class TestStatistics:
    def test_totals(self, quoted):
        stats = quoted.statistics()
        # 2 x 4407000 + 1 x 1027848 + 5 x 0
        assert stats.total_price == Decimal("9841848")
        assert stats.total_quantity == 8
        assert stats.exact_match_count == 1
        assert stats.fuzzy_match_count == 1
        assert stats.new_part_count == 1

    def test_override_wins(self, quoted):
        quoted.set_price_override("NEW_UNKNOWN-1", 100)
        assert quoted.statistics().total_price == Decimal("9842348")

    def test_manual_selection_is_not_counted_as_matched(self, session):
        session.toggle_part("ZB0002")
        stats = session.statistics()
        assert stats.total_quantity == 1
        assert stats.exact_match_count == 0
        assert stats.fuzzy_match_count == 0
        assert stats.new_part_count == 0

    def test_manual_selection_alongside_reconciled(self, quoted):
        quoted.remove_entry("ZB0002")
        quoted.toggle_part("ZB0002")
        stats = quoted.statistics()
        assert stats.exact_match_count == 0
        assert stats.fuzzy_match_count == 1
        assert stats.new_part_count == 1


class TestPricingAndCustomer:
    def test_price_option_validation(self, session):
        with pytest.raises(ValueError):
            session.set_price_option("cheapest")
        session.set_price_option("guide_price")
        assert session.price_option == "guide_price"

    def test_set_customer(self, session):
        info = session.set_customer(name="中远海运", vessel="COSCO STAR")
        assert info.name == "中远海运"
        assert info.vessel == "COSCO STAR"
        assert session.customer.contact == ""

    def test_set_customer_unknown_field(self, session):
        with pytest.raises(TypeError):
            session.set_customer(fax="123")
