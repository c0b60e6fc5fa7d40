"""
Domain insight generators: store health, partners, inventory, workforce, finance
"""
from .finance import FinanceInsightEngine, evaluate_finance
from .inventory import evaluate_inventory
from .models import EntityType, Insight, InsightDomain, Severity, evaluation_timestamp
from .partners import evaluate_partners
from .store_health import HealthStatus, StoreHealth, StoreHealthReport, evaluate_store_health
from .workforce import evaluate_workforce

__all__ = [
    "EntityType",
    "Insight",
    "InsightDomain",
    "Severity",
    "evaluation_timestamp",
    "HealthStatus",
    "StoreHealth",
    "StoreHealthReport",
    "evaluate_store_health",
    "evaluate_partners",
    "evaluate_inventory",
    "evaluate_workforce",
    "FinanceInsightEngine",
    "evaluate_finance",
]
