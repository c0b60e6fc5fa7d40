"""
Unit Tests - Domain Insight Generators
"""
import pytest

from grovyn_core.exceptions import EntityNotFoundError
from grovyn_core.ingestion.commission import attribute_commissions
from grovyn_core.ingestion.orders import normalize_orders
from grovyn_core.insights.inventory import round_to_unit
from grovyn_core.insights.models import EntityType, InsightDomain, Severity, evaluation_timestamp
from grovyn_core.insights.partners import evaluate_partners
from grovyn_core.insights.store_health import HealthStatus, failure_rate_for_store
from grovyn_core.pipeline import build_pipeline


class TestStoreHealth:
    """Tests for composite store health"""

    def test_failure_rate_bounds(self):
        """Test simulated failure rate is deterministic and bounded"""
        rate = failure_rate_for_store("store_0001", 42)
        assert rate == failure_rate_for_store("store_0001", 42)
        assert 0.0 <= rate <= 0.10

    def test_status_matches_breaches(self, booted):
        """Test status follows the breach count"""
        for result in booted.store_health.results:
            if len(result.breaches) >= 2:
                assert result.status == HealthStatus.CRITICAL
            elif result.breaches:
                assert result.status == HealthStatus.AT_RISK
            else:
                assert result.status == HealthStatus.HEALTHY

    def test_insights_for_unhealthy_stores_only(self, booted):
        """Test one STORE_HEALTH insight per non-healthy store"""
        report = booted.store_health
        assert len(report.insights) == report.stores_at_risk
        assert sum(report.status_counts().values()) == len(booted.dataset.stores)

    def test_unknown_store(self, booted):
        """Test health lookup for an unknown store"""
        with pytest.raises(EntityNotFoundError):
            booted.store_health_for("store_missing")


class TestPartnerInsights:
    """Tests for commission rules"""

    def test_direct_never_evaluated(self, booted):
        """Test no partner insight targets DIRECT"""
        assert all(i.entity_id != "DIRECT" for i in booted.partner_insights)
        assert all(i.entity_type == EntityType.PARTNER for i in booted.partner_insights)

    def test_commission_over_cap(self, small_dataset, test_settings):
        """Test average commission above the cap flags the partner"""
        commission = test_settings.commission.model_copy(
            update={"partner_rates": {"AGGREGATOR_A": 0.25, "AGGREGATOR_B": 0.18}}
        )
        settings = test_settings.model_copy(update={"commission": commission})
        book = normalize_orders(small_dataset, settings)
        insights = evaluate_partners(attribute_commissions(book, settings), settings)

        flagged = [i for i in insights if i.type == "AGGREGATOR_UNDERPERFORMING"]
        assert [i.entity_id for i in flagged] == ["AGGREGATOR_A"]
        assert flagged[0].severity == Severity.WARNING


class TestInventoryInsights:
    """Tests for stock rules"""

    def test_round_to_unit(self):
        """Test reorder quantities round per unit"""
        assert round_to_unit(3.6, "pcs") == 4.0
        assert round_to_unit(3.456, "kg") == 3.46
        assert round_to_unit(2.5, "pcs") == 3.0
        assert round_to_unit(0.5, "pcs") == 1.0
        assert round_to_unit(-1.0, "L") == 0.0

    def test_low_stock_consistent_with_ledger(self, booted, test_settings):
        """Test every low-stock row has exactly one LOW_STOCK insight"""
        limit = test_settings.insights.low_stock_days
        low_rows = {(r.store_id, r.ingredient_id) for r in booted.inventory.rows if r.days_remaining < limit}
        flagged = {(i.store_id, i.entity_id) for i in booted.inventory_insights if i.type == "LOW_STOCK"}
        assert flagged == low_rows

    def test_inventory_insights_scoped(self, booted):
        """Test inventory insights carry store and ingredient"""
        for insight in booted.inventory_insights:
            assert insight.domain == InsightDomain.INVENTORY
            assert insight.store_id is not None
            assert insight.entity_type == EntityType.INGREDIENT


class TestWorkforceInsights:
    """Tests for utilization rules"""

    def test_morning_rush_is_critical_shortage(self, dataset_factory, test_settings):
        """Test a packed morning shift raises a critical staff shortage"""
        dataset = dataset_factory([
            {"store": "s1", "customer": f"c{i}", "amount": 100.0, "hour": 9} for i in range(40)
        ])
        ctx = build_pipeline(dataset, test_settings)

        shortages = [i for i in ctx.workforce_insights if i.type == "STAFF_SHORTAGE"]
        assert len(shortages) == 1
        assert shortages[0].severity == Severity.CRITICAL
        assert shortages[0].details["shift"] == "morning"
        assert not [i for i in ctx.workforce_insights if i.type == "OVERSTAFFING"]


class TestFinanceInsights:
    """Tests for finance rules"""

    def test_churn_risk_references_store(self, dataset_factory, test_settings):
        """Test a lapsed high-value customer yields CHURN_RISK for their last store"""
        orders = [{"store": "s1", "customer": "c_lapsed", "amount": 600.0, "days_ago": 20}]
        orders += [{"store": "s2", "customer": f"c{i}", "amount": 120.0} for i in range(6)]
        ctx = build_pipeline(dataset_factory(orders), test_settings)

        churn = [i for i in ctx.finance_insights if i.type == "CHURN_RISK"]
        assert len(churn) == 1
        assert churn[0].store_id == "s1"
        assert churn[0].severity == Severity.WARNING
        assert churn[0].details["customer_ids"] == ["c_lapsed"]

    def test_recent_customer_not_churn_risk(self, dataset_factory, test_settings):
        """Test a high-value customer active recently is not flagged"""
        orders = [{"store": "s1", "customer": "c_active", "amount": 600.0, "days_ago": 3}]
        orders += [{"store": "s2", "customer": "c1", "amount": 120.0}]
        ctx = build_pipeline(dataset_factory(orders), test_settings)
        assert not [i for i in ctx.finance_insights if i.type == "CHURN_RISK"]

    def test_discount_misuse(self, dataset_factory, test_settings):
        """Test discounts on one-order customers are flagged"""
        dataset = dataset_factory([
            {"store": "s1", "customer": f"c{i}", "amount": 100.0} for i in range(25)
        ])
        ctx = build_pipeline(dataset, test_settings)

        misuse = [i for i in ctx.finance_insights if i.type == "DISCOUNT_MISUSE"]
        assert [i.details["order_id"] for i in misuse] == ["ord_0000", "ord_0010", "ord_0020"]
        assert all(i.store_id == "s1" for i in misuse)

    def test_repeat_customer_discount_not_flagged(self, dataset_factory, test_settings):
        """Test discounts on returning customers are not flagged"""
        dataset = dataset_factory([
            {"store": "s1", "customer": "c1", "amount": 100.0},
            {"store": "s1", "customer": "c1", "amount": 100.0, "days_ago": 1},
        ])
        ctx = build_pipeline(dataset, test_settings)
        assert not [i for i in ctx.finance_insights if i.type == "DISCOUNT_MISUSE"]

    def test_evaluation_timestamp(self, booted):
        """Test insight timestamps derive from the reference date"""
        expected = evaluation_timestamp(booted.orders.reference_date)
        assert expected.endswith("T12:00:00.000Z")
        assert all(i.evaluated_at == expected for i in booted.finance_insights)

    def test_negative_profit_is_critical(self, booted):
        """Test negative profit insights match the profit report"""
        losing = {p.entity_id for p in booted.profit.stores if p.profit < 0}
        losing |= {p.entity_id for p in booted.profit.brands if p.profit < 0}
        flagged = [i for i in booted.finance_insights if i.type == "NEGATIVE_PROFIT"]
        assert {i.entity_id for i in flagged} == losing
        assert all(i.severity == Severity.CRITICAL for i in flagged)

    def test_store_rules_interleave_per_store(self, dataset_factory, test_settings):
        """Test each store's leakage and loss are emitted together, ahead of brand losses"""
        dataset = dataset_factory([
            {"store": "s1", "customer": "c1", "amount": 10.0},
            {"store": "s2", "customer": "c2", "amount": 60.0},
            {"store": "s3", "customer": "c3", "amount": 36000.0},
        ])
        ctx = build_pipeline(dataset, test_settings)

        store_level = [
            (i.type, i.entity_id)
            for i in ctx.finance_insights
            if i.type in ("MARGIN_LEAKAGE", "NEGATIVE_PROFIT")
        ]
        assert ctx.profit.for_store("s1").profit < 0
        expected = []
        for store_id in ("s1", "s2"):
            expected.append(("MARGIN_LEAKAGE", store_id))
            if ctx.profit.for_store(store_id).profit < 0:
                expected.append(("NEGATIVE_PROFIT", store_id))
        assert [pair for pair in store_level if pair[1] in ("s1", "s2")] == expected
        kinds = [i.entity_type for i in ctx.finance_insights if i.type in ("MARGIN_LEAKAGE", "NEGATIVE_PROFIT")]
        first_brand = kinds.index(EntityType.BRAND)
        assert all(kind == EntityType.STORE for kind in kinds[:first_brand])
        assert all(kind == EntityType.BRAND for kind in kinds[first_brand:])

    def test_brand_loss_has_no_store(self, dataset_factory, test_settings):
        """Test brand losses are not attached to the owning store"""
        dataset = dataset_factory([
            {"store": "s1", "customer": "c1", "amount": 10.0},
            {"store": "s2", "customer": "c2", "amount": 36000.0},
        ])
        ctx = build_pipeline(dataset, test_settings)

        brand_losses = [i for i in ctx.finance_insights if i.entity_type == EntityType.BRAND]
        assert "brand_s1" in [i.entity_id for i in brand_losses]
        assert all(i.store_id is None and i.brand_id == i.entity_id for i in brand_losses)
