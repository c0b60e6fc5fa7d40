"""
Finance Insights

Rules over the profit report and per-order financials:
- MARGIN_LEAKAGE: store margin below the network baseline
- NEGATIVE_PROFIT: store or brand losing money
- LOW_ITEM_MARGIN: item contribution margin below threshold
- DISCOUNT_MISUSE: discount spent on a customer who never came back
- CHURN_RISK: valuable customers gone quiet, grouped by their last store

Store leakage and loss are emitted together per store, ahead of brand losses.
"""

from typing import Dict, List, Optional

import structlog

from grovyn_core.analytics.intelligence import build_customer_activity, is_inactive, reference_midday
from grovyn_core.config import Settings, get_settings
from grovyn_core.data.models import SeedDataset
from grovyn_core.finance.profit import Profitability, ProfitReport
from grovyn_core.finance.settlement import FinanceLedger
from grovyn_core.ingestion.orders import OrderBook
from grovyn_core.insights.models import EntityType, Insight, InsightDomain, Severity, evaluation_timestamp

logger = structlog.get_logger(__name__)


class FinanceInsightEngine:
    """
    Evaluates finance rules over frozen profit and settlement results.

    Example:
        engine = FinanceInsightEngine(profit, finance, order_book, dataset, settings)
        insights = engine.evaluate()
    """

    def __init__(
        self,
        profit: ProfitReport,
        finance: FinanceLedger,
        order_book: OrderBook,
        dataset: SeedDataset,
        settings: Optional[Settings] = None,
    ):
        self.profit = profit
        self.finance = finance
        self.order_book = order_book
        self.dataset = dataset
        self.settings = settings or get_settings()
        self.thresholds = self.settings.insights
        self.evaluated_at = evaluation_timestamp(order_book.reference_date)
        self.store_names = {store.id: store.name for store in dataset.stores}

    def _insight(self, type_: str, severity: Severity, message: str, entity_type: EntityType,
                 entity_id: str, store_id: Optional[str] = None, **extra) -> Insight:
        return Insight(
            domain=InsightDomain.FINANCE,
            type=type_,
            severity=severity,
            message=message,
            evaluated_at=self.evaluated_at,
            store_id=store_id,
            store_name=self.store_names.get(store_id) if store_id else None,
            entity_type=entity_type,
            entity_id=entity_id,
            **extra,
        )

    def margin_leakage(self, store: Profitability) -> Optional[Insight]:
        t = self.thresholds
        baseline = self.profit.baseline_margin_percent
        gap = baseline - store.margin_percent
        if gap > t.margin_leakage_critical_points:
            severity = Severity.CRITICAL
        elif gap > t.margin_leakage_points:
            severity = Severity.WARNING
        else:
            return None
        return self._insight(
            "MARGIN_LEAKAGE",
            severity,
            f"Store margin ({store.margin_percent:.1f}%) is below network baseline ({baseline:.1f}%).",
            EntityType.STORE,
            store.entity_id,
            store_id=store.entity_id,
            details={"margin_percent": store.margin_percent, "baseline_percent": round(baseline, 2)},
        )

    def store_loss(self, store: Profitability) -> Optional[Insight]:
        if store.profit >= 0:
            return None
        return self._insight(
            "NEGATIVE_PROFIT",
            Severity.CRITICAL,
            f"Store has negative profit ({store.profit:.2f}).",
            EntityType.STORE,
            store.entity_id,
            store_id=store.entity_id,
            details={"profit": store.profit},
        )

    def store_rules(self) -> List[Insight]:
        """Leakage then loss for each store, in store order"""
        insights = []
        for store in self.profit.stores:
            for insight in (self.margin_leakage(store), self.store_loss(store)):
                if insight is not None:
                    insights.append(insight)
        return insights

    def brand_losses(self) -> List[Insight]:
        # Brand entities carry no store id and rank under the global key
        return [
            self._insight(
                "NEGATIVE_PROFIT",
                Severity.CRITICAL,
                f"Brand has negative profit ({brand.profit:.2f}).",
                EntityType.BRAND,
                brand.entity_id,
                brand_id=brand.entity_id,
                details={"profit": brand.profit},
            )
            for brand in self.profit.brands
            if brand.profit < 0
        ]

    def low_item_margin(self) -> List[Insight]:
        limit = self.thresholds.low_item_margin_percent
        return [
            self._insight(
                "LOW_ITEM_MARGIN",
                Severity.INFO,
                f"Item contribution margin ({item.margin_percent:.1f}%) below {limit:g}%.",
                EntityType.ITEM,
                item.item_id,
                item_id=item.item_id,
                details={"revenue": item.revenue, "margin": item.margin, "margin_percent": item.margin_percent},
            )
            for item in self.profit.items
            if item.revenue > 0 and item.margin_percent < limit
        ]

    def discount_misuse(self) -> List[Insight]:
        order_counts: Dict[str, int] = {}
        for order in self.order_book.orders:
            order_counts[order.customer_id] = order_counts.get(order.customer_id, 0) + 1

        insights = []
        for financial in self.finance.discounted():
            if order_counts.get(financial.customer_id, 0) != 1:
                continue
            insights.append(self._insight(
                "DISCOUNT_MISUSE",
                Severity.WARNING,
                f"Discount applied to order {financial.order_id} but customer has no repeat orders (no uplift).",
                EntityType.STORE,
                financial.store_id,
                store_id=financial.store_id,
                details={
                    "order_id": financial.order_id,
                    "customer_id": financial.customer_id,
                    "discount_cost": financial.discount_cost,
                },
            ))
        return insights

    def churn_risk(self) -> List[Insight]:
        """One insight per store holding lapsed high-value customers"""
        t = self.thresholds
        as_of = reference_midday(self.order_book)
        at_risk: Dict[str, List[str]] = {}
        value_at_risk: Dict[str, float] = {}
        for activity in build_customer_activity(self.order_book).values():
            if activity.lifetime_value < t.churn_min_ltv or not is_inactive(activity, as_of, t.churn_inactive_days):
                continue
            at_risk.setdefault(activity.last_store_id, []).append(activity.customer_id)
            value_at_risk[activity.last_store_id] = (
                value_at_risk.get(activity.last_store_id, 0.0) + activity.lifetime_value
            )

        insights = []
        for store in self.dataset.stores:
            customers = at_risk.get(store.id)
            if not customers:
                continue
            insights.append(self._insight(
                "CHURN_RISK",
                Severity.WARNING,
                (
                    f"{len(customers)} high-value customer(s) inactive for over "
                    f"{t.churn_inactive_days} days. Consider a win-back offer."
                ),
                EntityType.STORE,
                store.id,
                store_id=store.id,
                details={"customer_ids": customers, "lifetime_value": round(value_at_risk[store.id], 2)},
            ))
        return insights

    def evaluate(self) -> List[Insight]:
        insights = (
            self.store_rules()
            + self.brand_losses()
            + self.low_item_margin()
            + self.discount_misuse()
            + self.churn_risk()
        )
        for insight in insights:
            logger.debug("Insight emitted", domain=insight.domain.value, type=insight.type,
                         severity=insight.severity.value, entity_id=insight.entity_id)
        logger.info(
            "Finance insights evaluated",
            baseline_margin_percent=round(self.profit.baseline_margin_percent, 2),
            insights=len(insights),
        )
        return insights


def evaluate_finance(
    profit: ProfitReport,
    finance: FinanceLedger,
    order_book: OrderBook,
    dataset: SeedDataset,
    settings: Optional[Settings] = None,
) -> List[Insight]:
    """Convenience function to run every finance rule"""
    return FinanceInsightEngine(profit, finance, order_book, dataset, settings).evaluate()
