"""
Time-Series Metrics Engine

Rolls orders into calendar-day windows relative to the reference date (the
maximum order date, never the wall clock):
- yesterday, last 7 days, last 14 days
- week-over-week: days [-14, -8] against [-7, -1]
- 7-day daily trend and 3-day trend classification
- per-store breakdown
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np
import polars as pl
import structlog

from grovyn_core.data.models import SeedDataset
from grovyn_core.finance.settlement import FinanceLedger
from grovyn_core.ingestion.commission import CommissionLedger
from grovyn_core.ingestion.orders import OrderBook

logger = structlog.get_logger(__name__)


class Trend(str, Enum):
    """3-day trend direction"""
    INCREASE = "increase"
    DECLINE = "decline"
    STABLE = "stable"


def classify_trend(values: Sequence[float]) -> Trend:
    """
    Classify the last three values.

    Strictly increasing is `increase`, strictly decreasing is `decline`,
    anything else (or fewer than three points) is `stable`.

    Example:
        >>> classify_trend([10.0, 12.0, 15.0])
        <Trend.INCREASE: 'increase'>
    """
    if len(values) < 3:
        return Trend.STABLE
    diffs = np.diff(np.asarray(values[-3:], dtype=float))
    if np.all(diffs > 0):
        return Trend.INCREASE
    if np.all(diffs < 0):
        return Trend.DECLINE
    return Trend.STABLE


@dataclass(frozen=True)
class WindowAggregate:
    """Totals over an inclusive calendar-day window"""
    start: date
    end: date
    revenue: float
    cost: float
    commission: float
    net_margin: float
    net_margin_percent: float
    repeat_rate: float
    order_count: int

    @property
    def commission_percent(self) -> float:
        return (self.commission / self.revenue) * 100 if self.revenue > 0 else 0.0


@dataclass(frozen=True)
class WeekOverWeek:
    """Current week [-7, -1] minus prior week [-14, -8]"""
    margin_delta_percent: float
    repeat_delta_percent: float
    commission_delta_percent: float
    revenue_delta_percent: float


@dataclass(frozen=True)
class DailyPoint:
    day: date
    revenue: float
    margin_percent: float
    repeat_percent: float
    commission_percent: float


@dataclass(frozen=True)
class StoreMetrics:
    store_id: str
    store_name: str
    yesterday: WindowAggregate
    last_7: WindowAggregate
    last_14: WindowAggregate
    repeat_rate_delta_7_vs_14: float


@dataclass(frozen=True)
class MetricsSnapshot:
    """Complete metrics view at the reference date"""
    reference_date: date
    yesterday: WindowAggregate
    last_7: WindowAggregate
    last_14: WindowAggregate
    wow: WeekOverWeek
    daily_trend: List[DailyPoint] = field(default_factory=list)
    trend_3day: Dict[str, Trend] = field(default_factory=dict)
    per_store: List[StoreMetrics] = field(default_factory=list)


class MetricsEngine:
    """
    Window aggregations over a polars frame of orders joined with finance.

    Example:
        engine = MetricsEngine(order_book, commissions, finance, dataset)
        snapshot = engine.snapshot()
        print(snapshot.wow.margin_delta_percent)
    """

    def __init__(
        self,
        order_book: OrderBook,
        commissions: CommissionLedger,
        finance: FinanceLedger,
        dataset: SeedDataset,
    ):
        self.order_book = order_book
        self.dataset = dataset
        self.reference_date = order_book.reference_date

        orders = order_book.orders
        net = []
        for o in orders:
            financial = finance.for_order(o.order_id)
            net.append(financial.net_revenue if financial else 0.0)

        self.frame = order_book.to_frame().with_columns(
            pl.Series("commission", [commissions.commission_for(o.order_id) for o in orders], dtype=pl.Float64),
            pl.Series("net", net, dtype=pl.Float64),
        )

    def day(self, offset: int) -> date:
        return self.reference_date + timedelta(days=offset)

    def aggregate(self, start: date, end: date, store_id: Optional[str] = None) -> WindowAggregate:
        """Aggregate orders with start <= date <= end"""
        window = self.frame.filter(pl.col("order_date").is_between(start, end))
        if store_id is not None:
            window = window.filter(pl.col("store_id") == store_id)

        order_count = window.height
        revenue = float(window["amount"].sum() or 0.0)
        commission = float(window["commission"].sum() or 0.0)
        net = float(window["net"].sum() or 0.0)

        repeat_orders = (
            window.group_by("customer_id")
            .agg(pl.len().alias("orders"))
            .filter(pl.col("orders") >= 2)["orders"]
            .sum()
        )
        repeat_rate = round((repeat_orders / order_count) * 100, 2) if order_count > 0 else 0.0

        return WindowAggregate(
            start=start,
            end=end,
            revenue=round(revenue, 2),
            cost=round(revenue - net, 2),
            commission=round(commission, 2),
            net_margin=round(net, 2),
            net_margin_percent=round((net / revenue) * 100, 2) if revenue > 0 else 0.0,
            repeat_rate=repeat_rate,
            order_count=order_count,
        )

    def week_over_week(self) -> WeekOverWeek:
        prior = self.aggregate(self.day(-14), self.day(-8))
        current = self.aggregate(self.day(-7), self.day(-1))
        revenue_delta = (
            round(((current.revenue - prior.revenue) / prior.revenue) * 100, 2) if prior.revenue > 0 else 0.0
        )
        return WeekOverWeek(
            margin_delta_percent=round(current.net_margin_percent - prior.net_margin_percent, 2),
            repeat_delta_percent=round(current.repeat_rate - prior.repeat_rate, 2),
            commission_delta_percent=round(current.commission_percent - prior.commission_percent, 2),
            revenue_delta_percent=revenue_delta,
        )

    def daily_trend(self, days: int = 7) -> List[DailyPoint]:
        points = []
        for offset in range(-(days - 1), 1):
            d = self.day(offset)
            agg = self.aggregate(d, d)
            points.append(DailyPoint(
                day=d,
                revenue=agg.revenue,
                margin_percent=agg.net_margin_percent,
                repeat_percent=agg.repeat_rate,
                commission_percent=round(agg.commission_percent, 2),
            ))
        return points

    def per_store(self) -> List[StoreMetrics]:
        yesterday = self.day(-1)
        results = []
        for store in self.dataset.stores:
            last_7 = self.aggregate(self.day(-7), self.reference_date, store.id)
            last_14 = self.aggregate(self.day(-14), self.reference_date, store.id)
            results.append(StoreMetrics(
                store_id=store.id,
                store_name=store.name,
                yesterday=self.aggregate(yesterday, yesterday, store.id),
                last_7=last_7,
                last_14=last_14,
                repeat_rate_delta_7_vs_14=round(last_7.repeat_rate - last_14.repeat_rate, 2),
            ))
        return results

    def snapshot(self) -> MetricsSnapshot:
        trend = self.daily_trend()
        snapshot = MetricsSnapshot(
            reference_date=self.reference_date,
            yesterday=self.aggregate(self.day(-1), self.day(-1)),
            last_7=self.aggregate(self.day(-7), self.reference_date),
            last_14=self.aggregate(self.day(-14), self.reference_date),
            wow=self.week_over_week(),
            daily_trend=trend,
            trend_3day={
                "revenue": classify_trend([p.revenue for p in trend]),
                "margin_percent": classify_trend([p.margin_percent for p in trend]),
                "repeat_rate": classify_trend([p.repeat_percent for p in trend]),
                "commission_percent": classify_trend([p.commission_percent for p in trend]),
            },
            per_store=self.per_store(),
        )
        logger.info(
            "Metrics computed",
            reference_date=snapshot.reference_date.isoformat(),
            orders_last_7=snapshot.last_7.order_count,
            wow_margin_delta=snapshot.wow.margin_delta_percent,
            trends={k: v.value for k, v in snapshot.trend_3day.items()},
        )
        return snapshot


def compute_metrics(
    order_book: OrderBook,
    commissions: CommissionLedger,
    finance: FinanceLedger,
    dataset: SeedDataset,
) -> MetricsSnapshot:
    """Convenience function to compute the metrics snapshot"""
    return MetricsEngine(order_book, commissions, finance, dataset).snapshot()
