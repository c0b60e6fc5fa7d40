"""
Business Intelligence Rules

KPI-level insights over the metrics snapshot, each with a deterministic
confidence score and an explainable list of conditions:

1. Repeat rate drop        6. Low-margin items
2. Margin decline WoW      7. Store performance gap
3. Commission rising       8. Dormant segment size
4. Churn risk              9. Champion health (always fires)
5. Reorder prediction

Also provides the top-3 action recommender and customer segmentation.
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

import structlog

from grovyn_core.analytics.metrics import MetricsSnapshot, Trend
from grovyn_core.config import Settings, get_settings
from grovyn_core.data.models import SeedDataset
from grovyn_core.finance.profit import ProfitReport
from grovyn_core.ingestion.orders import OrderBook

logger = structlog.get_logger(__name__)

WIN_BACK_ORDER_VALUE = 200
WIN_BACK_RECOVERY_RATE = 0.15
TOP_CHURN_RISKS = 8


# =============================================================================
# CUSTOMER ACTIVITY
# =============================================================================

@dataclass(frozen=True)
class CustomerActivity:
    """Order history summary of one customer"""
    customer_id: str
    order_count: int
    lifetime_value: float
    last_order_at: datetime
    last_store_id: str


def build_customer_activity(order_book: OrderBook) -> Dict[str, CustomerActivity]:
    """Order count, LTV and latest order per customer"""
    counts: Dict[str, int] = {}
    ltv: Dict[str, float] = {}
    latest: Dict[str, Tuple[datetime, str]] = {}
    for order in order_book.in_replay_order():
        cid = order.customer_id
        counts[cid] = counts.get(cid, 0) + 1
        ltv[cid] = ltv.get(cid, 0.0) + order.amount
        latest[cid] = (order.created_at, order.store_id)
    return {
        cid: CustomerActivity(cid, counts[cid], ltv[cid], latest[cid][0], latest[cid][1])
        for cid in counts
    }


def reference_midday(order_book: OrderBook) -> datetime:
    return datetime.combine(order_book.reference_date, time(12, 0), tzinfo=timezone.utc)


def reference_start(order_book: OrderBook) -> datetime:
    return datetime.combine(order_book.reference_date, time(0, 0), tzinfo=timezone.utc)


def is_inactive(activity: CustomerActivity, as_of: datetime, inactive_days: int) -> bool:
    return activity.last_order_at < as_of - timedelta(days=inactive_days)


def days_inactive(activity: CustomerActivity, as_of: datetime) -> int:
    return (as_of - activity.last_order_at).days


def confidence(deviation_strength: float, confirming: int) -> int:
    """min(95, 70 + deviation (max 15) + 3 per confirming signal (max 10))"""
    return min(95, round(70 + min(deviation_strength, 15) + min(confirming * 3, 10)))


# =============================================================================
# INSIGHT MODEL
# =============================================================================

class BusinessInsightKind(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    OPPORTUNITY = "opportunity"
    SUCCESS = "success"


@dataclass(frozen=True)
class Condition:
    condition: str
    met: bool
    detail: str


@dataclass(frozen=True)
class BusinessInsight:
    """Rule-fired KPI observation"""
    id: str
    kind: BusinessInsightKind
    priority: int
    title: str
    text: str
    confidence: int
    trigger_rule: str
    conditions: List[Condition] = field(default_factory=list)


@dataclass(frozen=True)
class RecommendedAction:
    priority: int
    insight_id: str
    action: str
    action_text: str
    effort: str
    expected_outcome: str


@dataclass(frozen=True)
class ChurnRisk:
    customer_id: str
    lifetime_value: float
    orders: int
    last_order_days_ago: int
    average_value: float


@dataclass(frozen=True)
class CustomerSegments:
    total_customers: int
    champion: int
    loyal: int
    new: int
    dormant: int
    predicted_reorders: int
    champion_average_ltv: float
    dormant_win_back_estimate: float
    churn_risks: List[ChurnRisk] = field(default_factory=list)

    def percent(self, count: int) -> float:
        return round((count / self.total_customers) * 100, 1) if self.total_customers else 0.0


# Action recommender tables, in priority order
ACTION_PRIORITY = [
    "churn rescue",
    "reorder capture",
    "direct channel shift",
    "item repricing",
    "repeat drop investigation",
    "dormant win-back",
]

INSIGHT_TO_ACTION = {
    "Churn Risk": ("churn rescue", "30 min", "Re-engage high-LTV customers before they churn."),
    "Reorder Prediction": ("reorder capture", "15 min", "Send targeted offer to likely reorder segment."),
    "Commission Rising": ("direct channel shift", "1 hour", "Shift traffic to direct channel to protect margin."),
    "Low-Margin Items": ("item repricing", "30 min", "Reprice or promote higher-margin items."),
    "Repeat Rate Drop": ("repeat drop investigation", "30 min", "Identify causes and run retention campaign."),
    "Dormant Segment Size": ("dormant win-back", "1 hour", "Win-back campaign to recover 15% of dormant base."),
}

ACTION_TEXT = {
    "churn rescue": "Contact high-value customers inactive 14+ days with a win-back offer.",
    "reorder capture": "Run a short campaign targeting customers likely to reorder this week.",
    "direct channel shift": "Promote direct ordering (app/web) to reduce aggregator commission.",
    "item repricing": "Review and reprice low-margin items or push higher-margin alternatives.",
    "repeat drop investigation": "Analyse repeat rate drop and launch a retention initiative.",
    "dormant win-back": "Launch dormant-customer win-back campaign (target 15% recovery).",
}


# =============================================================================
# ENGINE
# =============================================================================

class IntelligenceEngine:
    """
    Rule-based business intelligence over frozen pipeline results.

    Example:
        engine = IntelligenceEngine(metrics, order_book, profit, dataset, settings)
        for insight in engine.generate_insights():
            print(insight.title, insight.confidence)
    """

    def __init__(
        self,
        metrics: MetricsSnapshot,
        order_book: OrderBook,
        profit: ProfitReport,
        dataset: SeedDataset,
        settings: Optional[Settings] = None,
    ):
        self.metrics = metrics
        self.order_book = order_book
        self.profit = profit
        self.dataset = dataset
        self.settings = settings or get_settings()
        self.thresholds = self.settings.insights
        self.activity = build_customer_activity(order_book)
        self.as_of = reference_midday(order_book)

    def _inactive(self) -> List[CustomerActivity]:
        return [a for a in self.activity.values() if is_inactive(a, self.as_of, self.thresholds.churn_inactive_days)]

    def _churn_risks(self) -> List[CustomerActivity]:
        return [a for a in self._inactive() if a.lifetime_value >= self.thresholds.churn_min_ltv]

    def _reorder_candidates(self) -> List[CustomerActivity]:
        # Reorder recency counts whole days back from the start of the reference date
        recent = reference_start(self.order_book) - timedelta(days=self.thresholds.reorder_window_days)
        return [
            a for a in self.activity.values()
            if a.order_count >= self.thresholds.reorder_min_orders and a.last_order_at >= recent
        ]

    def _champions(self) -> List[CustomerActivity]:
        return [a for a in self.activity.values() if a.order_count >= self.thresholds.champion_min_orders]

    def generate_insights(self) -> List[BusinessInsight]:
        m = self.metrics
        t = self.thresholds
        last_7, last_14, wow, trend = m.last_7, m.last_14, m.wow, m.trend_3day
        insights: List[BusinessInsight] = []

        def add(kind, priority, title, text, conf, rule, conditions):
            insights.append(BusinessInsight(
                id=f"insight_{len(insights) + 1}",
                kind=kind,
                priority=priority,
                title=title,
                text=text,
                confidence=conf,
                trigger_rule=rule,
                conditions=conditions,
            ))

        def met_count(conditions: List[Condition]) -> int:
            return sum(1 for c in conditions if c.met)

        # 1. Repeat rate drop
        repeat_gap = last_14.repeat_rate - last_7.repeat_rate
        repeat_drop = last_7.repeat_rate < last_14.repeat_rate and repeat_gap > 0.5
        conditions = [
            Condition("repeat_7d < repeat_14d", repeat_drop, f"{last_7.repeat_rate}% < {last_14.repeat_rate}%"),
            Condition("3-day continuous decline", trend["repeat_rate"] == Trend.DECLINE,
                      "Confirmed" if trend["repeat_rate"] == Trend.DECLINE else "No"),
            Condition("WoW repeat negative", wow.repeat_delta_percent < 0, f"{wow.repeat_delta_percent}%"),
        ]
        if repeat_drop:
            add(BusinessInsightKind.CRITICAL, 1, "Repeat Rate Drop",
                f"7-day repeat rate ({last_7.repeat_rate}%) is below 14-day ({last_14.repeat_rate}%). "
                f"WoW delta: {wow.repeat_delta_percent}%. Consider retention campaigns.",
                confidence(min(repeat_gap / 0.5, 1) * 15, met_count(conditions)),
                "Fire if 7d repeat < 14d repeat by >0.5%.", conditions)

        # 2. Margin decline WoW
        margin_decline = wow.margin_delta_percent < -0.3
        conditions = [
            Condition("WoW margin change < -0.3%", margin_decline, f"{wow.margin_delta_percent}%"),
            Condition("3-day margin decline", trend["margin_percent"] == Trend.DECLINE,
                      "Yes" if trend["margin_percent"] == Trend.DECLINE else "No"),
            Condition("Commission rising", wow.commission_delta_percent > 0, f"{wow.commission_delta_percent}%"),
        ]
        if margin_decline:
            add(BusinessInsightKind.WARNING, 2, "Margin Decline WoW",
                f"Week-over-week margin change is {wow.margin_delta_percent}%. "
                f"Net margin 7d: {last_7.net_margin_percent}%, 14d: {last_14.net_margin_percent}%.",
                confidence(min(abs(wow.margin_delta_percent) / 0.3, 1) * 15, met_count(conditions)),
                "Fire if WoW margin change < -0.3%.", conditions)

        # 3. Commission rising
        commission_rising = wow.commission_delta_percent > 0.2
        conditions = [
            Condition("WoW commission change > +0.2%", commission_rising, f"{wow.commission_delta_percent}%"),
            Condition("3-day commission trend", trend["commission_percent"] == Trend.INCREASE,
                      trend["commission_percent"].value),
            Condition("Margin declining", wow.margin_delta_percent < 0, f"{wow.margin_delta_percent}%"),
        ]
        if commission_rising:
            add(BusinessInsightKind.WARNING, 3, "Commission Rising",
                f"Commission WoW change +{wow.commission_delta_percent}%. "
                "Consider shifting traffic to direct channel.",
                confidence(min(wow.commission_delta_percent / 0.2, 1) * 15, met_count(conditions)),
                "Fire if WoW commission change > +0.2%.", conditions)

        # 4. Churn risk
        inactive = self._inactive()
        at_risk = self._churn_risks()
        conditions = [
            Condition(f"Customers with last_order > {t.churn_inactive_days} days", bool(inactive),
                      f"{len(inactive)} customers"),
            Condition(f"LTV >= {t.churn_min_ltv:g}", bool(at_risk), f"{len(at_risk)} at risk"),
        ]
        if at_risk:
            ltv_at_risk = sum(a.lifetime_value for a in at_risk)
            avg_inactive = sum(days_inactive(a, self.as_of) for a in inactive) / len(inactive)
            add(BusinessInsightKind.CRITICAL, 4, "Churn Risk",
                f"{len(at_risk)} high-value customers inactive {t.churn_inactive_days}+ days. "
                f"Total LTV at risk: {ltv_at_risk:.0f}. Avg days inactive: {avg_inactive:.0f}.",
                confidence(10, 2),
                "Fire if any customers have last_order > threshold days AND LTV >= threshold.", conditions)

        # 5. Reorder prediction
        candidates = self._reorder_candidates()
        conditions = [
            Condition(f"last_order <= {t.reorder_window_days} days", bool(candidates), f"{len(candidates)} customers"),
            Condition(f"total_orders >= {t.reorder_min_orders}", bool(candidates), "Yes" if candidates else "No"),
        ]
        if candidates:
            capturable = sum(a.lifetime_value / max(1, a.order_count) for a in candidates)
            add(BusinessInsightKind.OPPORTUNITY, 5, "Reorder Prediction",
                f"{len(candidates)} customers likely to reorder (active <={t.reorder_window_days} days, "
                f"{t.reorder_min_orders}+ orders). Estimated capturable revenue: {capturable:.0f}.",
                78, "Fire if customers have recent orders AND enough total orders.", conditions)

        # 6. Low-margin items
        low_margin = [i for i in self.profit.items if i.margin_percent < t.low_margin_item_percent]
        conditions = [
            Condition(f"Any item margin < {t.low_margin_item_percent:g}%", bool(low_margin), f"{len(low_margin)} items"),
        ]
        if low_margin:
            worst = min(low_margin, key=lambda i: i.margin_percent)
            names = {item.id: item.name for item in self.dataset.items}
            add(BusinessInsightKind.WARNING, 6, "Low-Margin Items",
                f"{len(low_margin)} items below {t.low_margin_item_percent:g}% margin. "
                f"Worst: {names.get(worst.item_id, worst.item_id)} at {worst.margin_percent:.1f}%.",
                confidence(15, 1), "Fire if any items have margin below threshold.", conditions)

        # 7. Store performance gap
        rates = [(s.store_name, s.last_7.repeat_rate) for s in m.per_store]
        max_gap = 0.0
        lagging = None
        for i, (name_a, rate_a) in enumerate(rates):
            for j, (name_b, rate_b) in enumerate(rates):
                if i == j:
                    continue
                gap = abs(rate_a - rate_b)
                if gap > max_gap and gap > t.store_gap_points:
                    max_gap = gap
                    lagging = (name_a, rate_a) if rate_a < rate_b else (name_b, rate_b)
        conditions = [
            Condition(f"Repeat rate gap between stores > {t.store_gap_points:g}%", lagging is not None,
                      f"{max_gap:.1f}%" if lagging else "No"),
        ]
        if lagging:
            add(BusinessInsightKind.WARNING, 7, "Store Performance Gap",
                f"Repeat rate gap {max_gap:.1f}%. Lagging store: {lagging[0]} ({lagging[1]}%).",
                confidence(12, 1), "Fire if repeat rate gap between any two stores exceeds threshold.", conditions)

        # 8. Dormant segment size
        dormant = len(inactive)
        conditions = [
            Condition("Dormant customers > threshold", dormant > t.dormant_segment_threshold, f"{dormant} dormant"),
        ]
        if dormant > t.dormant_segment_threshold:
            estimate = dormant * WIN_BACK_ORDER_VALUE * WIN_BACK_RECOVERY_RATE
            add(BusinessInsightKind.OPPORTUNITY, 8, "Dormant Segment Size",
                f"{dormant} dormant customers ({t.churn_inactive_days}+ days). "
                f"Win-back revenue estimate at 15% recovery: {estimate:.0f}/month.",
                confidence(10, 1), "Fire if dormant customers exceed threshold.", conditions)

        # 9. Champion health
        champions = self._champions()
        avg_ltv = sum(a.lifetime_value for a in champions) / len(champions) if champions else 0.0
        add(BusinessInsightKind.SUCCESS, 9, "Champion Health",
            f"{len(champions)} high-value customers ({t.champion_min_orders}+ orders). Avg LTV: {avg_ltv:.0f}.",
            85, "Always fire.",
            [Condition(f"Customers with {t.champion_min_orders}+ orders", True, f"{len(champions)} champions")])

        logger.info("Business insights generated", count=len(insights), titles=[i.title for i in insights])
        return insights

    def top_actions(
        self,
        insights: Optional[List[BusinessInsight]] = None,
        limit: int = 3,
    ) -> List[RecommendedAction]:
        """Map fired insights to actions and keep the highest-priority ones"""
        if insights is None:
            insights = self.generate_insights()
        candidates = []
        for insight in insights:
            mapping = INSIGHT_TO_ACTION.get(insight.title)
            if mapping is None:
                continue
            action, effort, outcome = mapping
            candidates.append((ACTION_PRIORITY.index(action), insight.id, action, effort, outcome))

        candidates.sort(key=lambda c: c[0])
        return [
            RecommendedAction(
                priority=rank,
                insight_id=insight_id,
                action=action,
                action_text=ACTION_TEXT[action],
                effort=effort,
                expected_outcome=outcome,
            )
            for rank, (_, insight_id, action, effort, outcome) in enumerate(candidates[:limit], start=1)
        ]

    def segment_customers(self) -> CustomerSegments:
        t = self.thresholds
        champion = loyal = new = 0
        for a in self.activity.values():
            if a.order_count >= t.champion_min_orders:
                champion += 1
            elif a.order_count >= t.loyal_min_orders:
                loyal += 1
            else:
                new += 1

        inactive = self._inactive()
        risks = sorted(
            (
                ChurnRisk(
                    customer_id=a.customer_id,
                    lifetime_value=round(a.lifetime_value, 2),
                    orders=a.order_count,
                    last_order_days_ago=days_inactive(a, self.as_of),
                    average_value=round(a.lifetime_value / a.order_count, 2),
                )
                for a in self._churn_risks()
            ),
            key=lambda r: r.lifetime_value,
            reverse=True,
        )
        champions = self._champions()

        return CustomerSegments(
            total_customers=len(self.activity),
            champion=champion,
            loyal=loyal,
            new=new,
            dormant=len(inactive),
            predicted_reorders=len(self._reorder_candidates()),
            champion_average_ltv=round(sum(a.lifetime_value for a in champions) / len(champions), 2) if champions else 0.0,
            dormant_win_back_estimate=round(len(inactive) * WIN_BACK_ORDER_VALUE * WIN_BACK_RECOVERY_RATE, 0),
            churn_risks=risks[:TOP_CHURN_RISKS],
        )


@dataclass(frozen=True)
class IntelligenceReport:
    insights: List[BusinessInsight]
    actions: List[RecommendedAction]
    segments: CustomerSegments


def build_intelligence(
    metrics: MetricsSnapshot,
    order_book: OrderBook,
    profit: ProfitReport,
    dataset: SeedDataset,
    settings: Optional[Settings] = None,
) -> IntelligenceReport:
    """Run all business intelligence rules once"""
    engine = IntelligenceEngine(metrics, order_book, profit, dataset, settings)
    insights = engine.generate_insights()
    return IntelligenceReport(
        insights=insights,
        actions=engine.top_actions(insights),
        segments=engine.segment_customers(),
    )
