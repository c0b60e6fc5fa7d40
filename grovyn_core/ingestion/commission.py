"""
Commission Attribution

Per-order partner commission and per-partner summaries. Direct orders pay
no commission; a partner id without a configured rate degrades to zero
commission and is logged rather than raised.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

import polars as pl
import structlog

from grovyn_core.config import Settings, get_settings
from grovyn_core.ingestion.orders import DIRECT, Channel, NormalizedOrder, OrderBook

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PartnerSummary:
    """Aggregated commission figures for one partner key"""
    partner_id: str
    order_count: int
    gross_revenue: float
    commission_paid: float
    average_commission_percent: float
    net_revenue: float


@dataclass(frozen=True)
class OrderTotals:
    """Gross and commission totals over an arbitrary order subset"""
    gross: float
    commission: float
    commission_percent: float


class CommissionLedger:
    """
    Commission per order plus per-partner summaries.

    Example:
        ledger = attribute_commissions(order_book, settings)
        for summary in ledger.summaries:
            print(summary.partner_id, summary.average_commission_percent)
    """

    def __init__(
        self,
        order_book: OrderBook,
        commissions: Dict[str, float],
        summaries: List[PartnerSummary],
        rates: Dict[str, float],
    ):
        self.order_book = order_book
        self._commissions = dict(commissions)
        self.summaries: Tuple[PartnerSummary, ...] = tuple(summaries)
        self.rates = dict(rates)

    def commission_for(self, order_id: str) -> float:
        return self._commissions.get(order_id, 0.0)

    def summary_for(self, partner_id: str) -> Optional[PartnerSummary]:
        for summary in self.summaries:
            if summary.partner_id == partner_id:
                return summary
        return None

    @property
    def total_orders(self) -> int:
        return sum(s.order_count for s in self.summaries)

    def baseline_commission_percent(self) -> Dict[str, float]:
        """All-time average commission % per partner key"""
        return {s.partner_id: s.average_commission_percent for s in self.summaries}

    def totals_for(self, orders: Iterable[NormalizedOrder]) -> OrderTotals:
        gross = 0.0
        commission = 0.0
        for order in orders:
            gross += order.amount
            commission += self.commission_for(order.order_id)
        percent = (commission / gross) * 100 if gross > 0 else 0.0
        return OrderTotals(gross=gross, commission=commission, commission_percent=percent)

    def orders_in_range(self, start: date, end: date) -> List[NormalizedOrder]:
        """Orders whose calendar date lies in [start, end]"""
        return [o for o in self.order_book.orders if start <= o.order_date <= end]

    def orders_in_week_of(self, day: date) -> List[NormalizedOrder]:
        """Orders in the Monday-to-Sunday week containing `day`"""
        monday = day - timedelta(days=day.weekday())
        return self.orders_in_range(monday, monday + timedelta(days=6))


def compute_order_commission(order: NormalizedOrder, rates: Dict[str, float]) -> float:
    """Commission for a single order (0 for direct or unknown partners)"""
    if order.channel == Channel.DIRECT:
        return 0.0
    rate = rates.get(order.partner_id)
    if rate is None:
        logger.warning("Unknown partner, commission set to zero", order_id=order.order_id, partner_id=order.partner_id)
        return 0.0
    return round(order.amount * rate, 2)


def attribute_commissions(order_book: OrderBook, settings: Optional[Settings] = None) -> CommissionLedger:
    """
    Compute commission per order and summarize per partner key.

    Summaries are emitted in order of first appearance, DIRECT included.
    """
    settings = settings or get_settings()
    rates = settings.commission.partner_rates
    logger.info("Commission rates active", rates=rates)

    commissions = {o.order_id: compute_order_commission(o, rates) for o in order_book.orders}

    frame = order_book.to_frame().with_columns(
        pl.Series("commission", [commissions[o.order_id] for o in order_book.orders], dtype=pl.Float64)
    )
    grouped = frame.group_by("partner_key", maintain_order=True).agg(
        pl.len().alias("order_count"),
        pl.col("amount").sum().alias("gross"),
        pl.col("commission").sum().alias("commission"),
    )

    summaries = []
    for row in grouped.iter_rows(named=True):
        gross = round(row["gross"], 2)
        paid = 0.0 if row["partner_key"] == DIRECT else round(row["commission"], 2)
        summaries.append(PartnerSummary(
            partner_id=row["partner_key"],
            order_count=int(row["order_count"]),
            gross_revenue=gross,
            commission_paid=paid,
            average_commission_percent=round((paid / gross) * 100, 2) if gross > 0 else 0.0,
            net_revenue=round(gross - paid, 2),
        ))

    ledger = CommissionLedger(order_book, commissions, summaries, rates)
    logger.info(
        "Commissions attributed",
        orders=ledger.total_orders,
        partners=[s.partner_id for s in summaries],
        commission_paid=round(sum(s.commission_paid for s in summaries), 2),
    )
    return ledger
