"""
Unit Tests - Settlement and Profit Attribution
"""
import pytest

from grovyn_core.exceptions import EntityNotFoundError
from grovyn_core.finance.profit import margin_percent
from grovyn_core.finance.settlement import attribute_finance, is_discounted
from grovyn_core.ingestion.commission import attribute_commissions
from grovyn_core.ingestion.orders import normalize_orders


class TestSettlement:
    """Tests for per-order financials"""

    def test_discount_every_tenth_order(self, dataset_factory, test_settings):
        """Test 25 orders get discounts at ingestion indices 0, 10 and 20"""
        dataset = dataset_factory([
            {"store": "s1", "customer": f"c{i}", "amount": 100.0} for i in range(25)
        ])
        book = normalize_orders(dataset, test_settings)
        ledger = attribute_finance(book, attribute_commissions(book, test_settings), test_settings)

        discounted = [book.get(f.order_id).ingestion_index for f in ledger.discounted()]
        assert discounted == [0, 10, 20]
        assert ledger.summary.discounted_orders == 3
        assert ledger.summary.total_discount == 30.0

    def test_is_discounted(self):
        """Test discount selection by modulo"""
        assert is_discounted(0, 10)
        assert not is_discounted(9, 10)
        assert is_discounted(30, 10)

    def test_net_revenue_identity(self, small_dataset, test_settings):
        """Test net = gross - commission - discount for every order"""
        book = normalize_orders(small_dataset, test_settings)
        ledger = attribute_finance(book, attribute_commissions(book, test_settings), test_settings)

        for f in ledger.financials:
            assert f.net_revenue == pytest.approx(f.gross_revenue - f.commission_cost - f.discount_cost, abs=0.01)
        assert sum(ledger.payouts.values()) == pytest.approx(ledger.summary.total_net_revenue, abs=0.05)


class TestProfit:
    """Tests for profit attribution over the booted pipeline"""

    def test_margin_percent(self):
        """Test margin percent and the zero-gross guard"""
        assert margin_percent(25.0, 100.0) == 25.0
        assert margin_percent(10.0, 0.0) == 0.0

    def test_store_profit_identity(self, booted):
        """Test profit = net - ingredient cost - labor cost per store"""
        for store in booted.profit.stores:
            assert store.profit == pytest.approx(
                store.net_revenue - store.ingredient_cost - store.labor_cost, abs=0.02
            )

    def test_every_store_reported(self, booted):
        """Test every dataset store has a profitability row"""
        assert {p.entity_id for p in booted.profit.stores} == {s.id for s in booted.dataset.stores}

    def test_summary_matches_settlement(self, booted):
        """Test profit summary carries settlement totals"""
        summary = booted.profit.summary
        assert summary.total_gross_revenue == booted.finance.summary.total_gross_revenue
        assert summary.total_profit == pytest.approx(sum(s.profit for s in booted.profit.stores), abs=0.05)

    def test_brand_gross_sums_to_total(self, booted):
        """Test brand gross revenue reconciles with the network total"""
        total = sum(b.gross_revenue for b in booted.profit.brands)
        assert total == pytest.approx(booted.profit.summary.total_gross_revenue, abs=0.5)

    def test_item_margin_identity(self, booted):
        """Test item margin = revenue - ingredient cost - commission"""
        for item in booted.profit.items:
            assert item.margin == pytest.approx(item.revenue - item.ingredient_cost - item.commission, abs=0.02)

    def test_brand_lookup(self, booted):
        """Test brand profitability lookup by id"""
        brand = booted.profit.brands[0]
        assert booted.profit.for_brand(brand.entity_id) == brand
        with pytest.raises(EntityNotFoundError):
            booted.profit.for_brand("brand_missing")

    def test_unknown_store_lookup(self, booted):
        """Test lookup for an unknown store raises EntityNotFoundError"""
        with pytest.raises(EntityNotFoundError):
            booted.profit.for_store("store_missing")
        with pytest.raises(EntityNotFoundError):
            booted.store_profitability_for("store_missing")
