"""
Executive Brief

Daily leadership summary: business snapshot, what needs attention today
(top-ranked insights as one-line bullets) and de-duplicated suggested actions.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Tuple

import structlog

from grovyn_core.autopilot.alerts import alert_timestamp
from grovyn_core.autopilot.priority import GLOBAL_KEY, PriorityRanking, store_key
from grovyn_core.config import Settings, get_settings
from grovyn_core.data.models import SeedDataset
from grovyn_core.finance.profit import ProfitReport
from grovyn_core.insights.models import Insight
from grovyn_core.insights.store_health import StoreHealthReport

logger = structlog.get_logger(__name__)

ELLIPSIS = "…"
DEFAULT_ACTION = "Review and act"

SUGGESTED_ACTIONS: Dict[str, str] = {
    "LOW_STOCK": "Reorder ingredient / review store ops",
    "STORE_HEALTH": "Reorder ingredient / review store ops",
    "STAFF_SHORTAGE": "Add evening staff or rebalance shifts",
    "PRODUCTIVITY_RISK": "Add evening staff or rebalance shifts",
    "MARGIN_LEAKAGE": "Review pricing and discounts",
    "NEGATIVE_PROFIT": "Review pricing and discounts",
    "DISCOUNT_MISUSE": "Pause discount for one-time customers",
    "LOW_ITEM_MARGIN": "Review item pricing",
    "OVERSTAFFING": "Optimize shift allocation",
    "COMMISSION_IMPACT_INCREASED": "Review aggregator terms",
    "AGGREGATOR_UNDERPERFORMING": "Review aggregator terms",
    "OVERSTOCK": "Reduce order or adjust menu",
    "WASTE_RISK": "Reduce order or adjust menu",
    "CHURN_RISK": "Launch win-back offer for lapsed customers",
}


@dataclass(frozen=True)
class BusinessSnapshot:
    total_gross_revenue: float
    total_net_revenue: float
    total_profit: float
    overall_margin_percent: float
    stores_at_risk: int
    status_counts: Dict[str, int]


@dataclass(frozen=True)
class ExecutiveBrief:
    generated_at: str
    business_snapshot: BusinessSnapshot
    what_needs_attention_today: Tuple[str, ...]
    suggested_actions: Tuple[str, ...]


def suggest_action(insight: Insight) -> str:
    return SUGGESTED_ACTIONS.get(insight.type, DEFAULT_ACTION)


def truncate(message: str, limit: int) -> str:
    return message[:limit] + (ELLIPSIS if len(message) > limit else "")


def attention_bullet(insight: Insight, store_names: Dict[str, str], limit: int = 80) -> str:
    """One line per insight, prefixed with the store name when known"""
    key = store_key(insight)
    store_id = key if key != GLOBAL_KEY else None
    store_name = insight.store_name or (store_names.get(store_id) if store_id else None)
    if store_name:
        return f"{store_name}: {truncate(insight.message, limit)}"
    if store_id:
        return f"Store {store_id}: {insight.message[:limit - 10]}{ELLIPSIS}"
    return insight.message


def compose_brief(
    profit: ProfitReport,
    store_health: StoreHealthReport,
    ranking: PriorityRanking,
    dataset: SeedDataset,
    reference_date: date,
    settings: Optional[Settings] = None,
) -> ExecutiveBrief:
    """
    Compose the executive brief from the ranked insights.

    Example:
        brief = compose_brief(profit, health, ranking, dataset, order_book.reference_date)
        print(brief.what_needs_attention_today)
    """
    settings = settings or get_settings()
    autopilot = settings.autopilot
    summary = profit.summary
    store_names = {store.id: store.name for store in dataset.stores}

    snapshot = BusinessSnapshot(
        total_gross_revenue=summary.total_gross_revenue,
        total_net_revenue=summary.total_net_revenue,
        total_profit=summary.total_profit,
        overall_margin_percent=summary.overall_margin_percent,
        stores_at_risk=store_health.stores_at_risk,
        status_counts=store_health.status_counts(),
    )

    top: List[Insight] = [scored.insight for scored in ranking.ranked[: autopilot.brief_bullets]]
    bullets = tuple(attention_bullet(i, store_names, autopilot.bullet_length) for i in top)
    actions = tuple(dict.fromkeys(suggest_action(i) for i in top))

    brief = ExecutiveBrief(
        generated_at=alert_timestamp(reference_date),
        business_snapshot=snapshot,
        what_needs_attention_today=bullets,
        suggested_actions=actions,
    )
    logger.info("Executive brief composed", bullets=len(bullets), actions=len(actions),
                stores_at_risk=snapshot.stores_at_risk)
    return brief
