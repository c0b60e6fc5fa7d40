"""
Insight Model

Common shape of every rule-fired observation produced by the domain
insight generators and consumed by the priority engine.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional


class Severity(str, Enum):
    """Insight severity, ordered info < warning < critical"""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return {"info": 0, "warning": 1, "critical": 2}[self.value]


class InsightDomain(str, Enum):
    """Originating generator"""
    STORE_HEALTH = "store_health"
    PARTNER = "partner"
    INVENTORY = "inventory"
    WORKFORCE = "workforce"
    FINANCE = "finance"


class EntityType(str, Enum):
    STORE = "STORE"
    BRAND = "BRAND"
    ITEM = "ITEM"
    PARTNER = "PARTNER"
    INGREDIENT = "INGREDIENT"


@dataclass(frozen=True)
class Insight:
    """Single rule-fired observation"""
    domain: InsightDomain
    type: str
    severity: Severity
    message: str
    evaluated_at: str
    store_id: Optional[str] = None
    store_name: Optional[str] = None
    brand_id: Optional[str] = None
    item_id: Optional[str] = None
    entity_type: Optional[EntityType] = None
    entity_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


def evaluation_timestamp(reference_date: date) -> str:
    """Insight timestamp: midday UTC of the reference date"""
    return f"{reference_date.isoformat()}T12:00:00.000Z"
