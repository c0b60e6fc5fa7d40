"""
Store Health

Composite health status per store from three signals evaluated against
yesterday (reference date - 1):
- order deviation from the daily baseline
- load factor (yesterday's hourly orders over the baseline hourly rate)
- failure rate, a seeded per-store value in [0, 0.10]

One breach makes a store at_risk, two or more make it critical.
"""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple

import structlog

from grovyn_core.config import Settings, get_settings
from grovyn_core.data.models import SeedDataset
from grovyn_core.data.random import SeededRandom, derive_seed
from grovyn_core.exceptions import EntityNotFoundError
from grovyn_core.ingestion.orders import OrderBook
from grovyn_core.insights.models import EntityType, Insight, InsightDomain, Severity, evaluation_timestamp
from grovyn_core.operations.shifts import operating_hours_length

logger = structlog.get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    AT_RISK = "at_risk"
    CRITICAL = "critical"


@dataclass(frozen=True)
class HealthSignals:
    order_deviation_percent: float
    load_factor: float
    failure_rate: float


@dataclass(frozen=True)
class StoreHealth:
    store_id: str
    store_name: str
    status: HealthStatus
    signals: HealthSignals
    breaches: Tuple[str, ...]
    evaluated_at: str


class StoreHealthReport:
    """Health of every store plus the derived insights"""

    def __init__(self, results: List[StoreHealth], insights: List[Insight]):
        self.results: Tuple[StoreHealth, ...] = tuple(results)
        self.insights: Tuple[Insight, ...] = tuple(insights)
        self._by_store = {r.store_id: r for r in results}

    def health_for(self, store_id: str) -> StoreHealth:
        if store_id not in self._by_store:
            raise EntityNotFoundError("store", store_id)
        return self._by_store[store_id]

    def status_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in HealthStatus}
        for result in self.results:
            counts[result.status.value] += 1
        return counts

    @property
    def stores_at_risk(self) -> int:
        return sum(1 for r in self.results if r.status != HealthStatus.HEALTHY)


def failure_rate_for_store(store_id: str, global_seed: int, max_rate: float = 0.10) -> float:
    """Deterministic simulated failure rate"""
    return SeededRandom(derive_seed(store_id, global_seed)).uniform(0, max_rate)


def evaluate_store_health(
    order_book: OrderBook,
    dataset: SeedDataset,
    settings: Optional[Settings] = None,
) -> StoreHealthReport:
    """
    Evaluate every store and emit an insight for each non-healthy one.

    Args:
        order_book: Normalized orders
        dataset: Seed dataset (store names and operating hours)
        settings: Pipeline settings

    Returns:
        StoreHealthReport
    """
    settings = settings or get_settings()
    t = settings.insights
    num_days = len(order_book.distinct_dates)
    yesterday = order_book.reference_date - timedelta(days=1)
    evaluated_at = evaluation_timestamp(order_book.reference_date)

    results = []
    insights = []
    for store in dataset.stores:
        store_orders = order_book.orders_for_store(store.id)
        hours = operating_hours_length(store.operating_hours) or t.default_operating_hours

        daily_baseline = len(store_orders) / num_days if num_days else 0.0
        hourly_baseline = daily_baseline / hours if hours > 0 else 0.0
        yesterday_orders = sum(1 for o in store_orders if o.order_date == yesterday)

        deviation = 0.0
        if daily_baseline > 0:
            deviation = round(((yesterday_orders - daily_baseline) / daily_baseline) * 100, 2)
        load_factor = 0.0
        if hourly_baseline > 0:
            load_factor = round((yesterday_orders / hours) / hourly_baseline, 2)
        failure_rate = failure_rate_for_store(store.id, settings.seed.random_seed, t.max_failure_rate)

        breaches = []
        if deviation < -t.order_drop_percent:
            breaches.append("order_deviation")
        if load_factor > t.load_factor_limit:
            breaches.append("load_factor")
        if failure_rate > t.failure_rate_limit:
            breaches.append("failure_rate")

        if len(breaches) >= 2:
            status = HealthStatus.CRITICAL
        elif breaches:
            status = HealthStatus.AT_RISK
        else:
            status = HealthStatus.HEALTHY

        result = StoreHealth(
            store_id=store.id,
            store_name=store.name,
            status=status,
            signals=HealthSignals(deviation, load_factor, failure_rate),
            breaches=tuple(breaches),
            evaluated_at=evaluated_at,
        )
        results.append(result)

        if status != HealthStatus.HEALTHY:
            insight = Insight(
                domain=InsightDomain.STORE_HEALTH,
                type="STORE_HEALTH",
                severity=Severity.CRITICAL if status == HealthStatus.CRITICAL else Severity.WARNING,
                message=f"{store.name} is {status.value.replace('_', ' ')}.",
                evaluated_at=evaluated_at,
                store_id=store.id,
                store_name=store.name,
                entity_type=EntityType.STORE,
                entity_id=store.id,
                details={"breaches": list(breaches), "yesterday_orders": yesterday_orders},
            )
            insights.append(insight)
            logger.debug("Insight emitted", domain=insight.domain.value, type=insight.type,
                         severity=insight.severity.value, store_id=store.id)

    report = StoreHealthReport(results, insights)
    logger.info("Store health evaluated", stores=len(results), status_counts=report.status_counts())
    return report
