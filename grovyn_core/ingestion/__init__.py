"""
Order ingestion: normalization and commission attribution
"""
from .commission import CommissionLedger, PartnerSummary, attribute_commissions
from .orders import Channel, NormalizedOrder, OrderBook, normalize_orders

__all__ = [
    "Channel",
    "NormalizedOrder",
    "OrderBook",
    "normalize_orders",
    "CommissionLedger",
    "PartnerSummary",
    "attribute_commissions",
]
