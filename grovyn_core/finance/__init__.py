"""
Finance: settlement ledger and profit attribution
"""
from .profit import ItemMargin, ProfitEngine, ProfitReport, Profitability, ProfitSummary, attribute_profit
from .settlement import FinanceLedger, FinanceSummary, OrderFinancial, attribute_finance

__all__ = [
    "FinanceLedger",
    "FinanceSummary",
    "OrderFinancial",
    "attribute_finance",
    "ItemMargin",
    "ProfitEngine",
    "ProfitReport",
    "Profitability",
    "ProfitSummary",
    "attribute_profit",
]
