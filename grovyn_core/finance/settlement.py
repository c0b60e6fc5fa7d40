"""
Finance Attribution

Simulated settlement ledger. Walks orders in ingestion order (not time
order) and discounts every Nth order at a fixed rate; no money moves.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import structlog

from grovyn_core.config import Settings, get_settings
from grovyn_core.ingestion.commission import CommissionLedger
from grovyn_core.ingestion.orders import OrderBook

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderFinancial:
    """Revenue breakdown of one order; net = gross - commission - discount"""
    order_id: str
    store_id: str
    brand_id: str
    customer_id: str
    partner_id: str
    gross_revenue: float
    commission_cost: float
    discount_cost: float
    net_revenue: float
    has_discount: bool


@dataclass(frozen=True)
class FinanceSummary:
    """Global settlement totals"""
    total_gross_revenue: float
    total_net_revenue: float
    total_commission: float
    total_discount: float
    discounted_orders: int


class FinanceLedger:
    """Per-order financials, partner payouts and totals"""

    def __init__(self, financials: List[OrderFinancial], payouts: Dict[str, float], summary: FinanceSummary):
        self.financials: Tuple[OrderFinancial, ...] = tuple(financials)
        self.payouts = dict(payouts)
        self.summary = summary
        self._by_order = {f.order_id: f for f in financials}

    def for_order(self, order_id: str) -> Optional[OrderFinancial]:
        return self._by_order.get(order_id)

    def discounted(self) -> List[OrderFinancial]:
        return [f for f in self.financials if f.has_discount]


def is_discounted(ingestion_index: int, modulo: int) -> bool:
    """Every `modulo`-th ingested order, starting at index 0"""
    return ingestion_index % modulo == 0


def attribute_finance(
    order_book: OrderBook,
    commissions: CommissionLedger,
    settings: Optional[Settings] = None,
) -> FinanceLedger:
    """
    Compute gross/net revenue per order with the discount simulation.

    Args:
        order_book: Normalized orders
        commissions: Commission per order
        settings: Pipeline settings

    Returns:
        FinanceLedger with per-partner payouts (sum of net revenue)
    """
    settings = settings or get_settings()
    modulo = settings.finance.discount_order_modulo
    rate = settings.finance.discount_rate

    financials = []
    payouts: Dict[str, float] = {}
    totals = {"gross": 0.0, "net": 0.0, "commission": 0.0, "discount": 0.0}

    for order in order_book.orders:
        gross = order.amount
        commission = commissions.commission_for(order.order_id)
        discounted = is_discounted(order.ingestion_index, modulo)
        discount = round(gross * rate, 2) if discounted else 0.0
        net = round(gross - commission - discount, 2)

        financials.append(OrderFinancial(
            order_id=order.order_id,
            store_id=order.store_id,
            brand_id=order.brand_id,
            customer_id=order.customer_id,
            partner_id=order.partner_key,
            gross_revenue=gross,
            commission_cost=commission,
            discount_cost=discount,
            net_revenue=net,
            has_discount=discounted,
        ))

        payouts[order.partner_key] = payouts.get(order.partner_key, 0.0) + net
        totals["gross"] += gross
        totals["net"] += net
        totals["commission"] += commission
        totals["discount"] += discount

    summary = FinanceSummary(
        total_gross_revenue=round(totals["gross"], 2),
        total_net_revenue=round(totals["net"], 2),
        total_commission=round(totals["commission"], 2),
        total_discount=round(totals["discount"], 2),
        discounted_orders=sum(1 for f in financials if f.has_discount),
    )
    ledger = FinanceLedger(
        financials,
        {partner: round(amount, 2) for partner, amount in payouts.items()},
        summary,
    )

    logger.info(
        "Finance attributed",
        orders=len(financials),
        discount_rule=f"every {modulo}th order at {rate:.0%}",
        discounted_orders=summary.discounted_orders,
        gross=summary.total_gross_revenue,
        net=summary.total_net_revenue,
    )
    return ledger
