"""
Pipeline Context

Owns one immutable result slot per stage. Slots are filled once, in
dependency order, during boot; afterwards the context is frozen and
only serves reads.
"""

from enum import Enum
from typing import Any, Dict, List, Tuple

import structlog

from grovyn_core.config import Settings
from grovyn_core.data.models import SeedDataset
from grovyn_core.exceptions import EntityNotFoundError, StageAlreadyPublishedError, StageNotReadyError

logger = structlog.get_logger(__name__)


class Stage(str, Enum):
    """Pipeline stages in boot order"""
    ORDERS = "orders"
    COMMISSIONS = "commissions"
    FINANCE = "finance"
    INVENTORY = "inventory"
    STAFFING = "staffing"
    SHIFTS = "shifts"
    PROFIT = "profit"
    METRICS = "metrics"
    INTELLIGENCE = "intelligence"
    STORE_HEALTH = "store_health"
    PARTNER_INSIGHTS = "partner_insights"
    INVENTORY_INSIGHTS = "inventory_insights"
    WORKFORCE_INSIGHTS = "workforce_insights"
    FINANCE_INSIGHTS = "finance_insights"
    PRIORITIES = "priorities"
    ALERTS = "alerts"
    BRIEF = "brief"


STAGE_DEPENDENCIES: Dict[Stage, Tuple[Stage, ...]] = {
    Stage.ORDERS: (),
    Stage.COMMISSIONS: (Stage.ORDERS,),
    Stage.FINANCE: (Stage.ORDERS, Stage.COMMISSIONS),
    Stage.INVENTORY: (Stage.ORDERS,),
    Stage.STAFFING: (),
    Stage.SHIFTS: (Stage.STAFFING, Stage.ORDERS),
    Stage.PROFIT: (Stage.FINANCE, Stage.INVENTORY, Stage.SHIFTS),
    Stage.METRICS: (Stage.ORDERS, Stage.COMMISSIONS, Stage.FINANCE),
    Stage.INTELLIGENCE: (Stage.METRICS, Stage.PROFIT),
    Stage.STORE_HEALTH: (Stage.ORDERS,),
    Stage.PARTNER_INSIGHTS: (Stage.COMMISSIONS,),
    Stage.INVENTORY_INSIGHTS: (Stage.INVENTORY,),
    Stage.WORKFORCE_INSIGHTS: (Stage.SHIFTS,),
    Stage.FINANCE_INSIGHTS: (Stage.PROFIT, Stage.FINANCE),
    Stage.PRIORITIES: (
        Stage.STORE_HEALTH,
        Stage.PARTNER_INSIGHTS,
        Stage.INVENTORY_INSIGHTS,
        Stage.WORKFORCE_INSIGHTS,
        Stage.FINANCE_INSIGHTS,
    ),
    Stage.ALERTS: (Stage.PRIORITIES,),
    Stage.BRIEF: (Stage.PRIORITIES, Stage.PROFIT, Stage.STORE_HEALTH),
}


class PipelineContext:
    """
    Write-once stage results plus read-only accessors.

    Example:
        context = PipelineContext(dataset, settings)
        context.publish(Stage.ORDERS, normalize_orders(dataset, settings))
        context.orders.reference_date
    """

    def __init__(self, dataset: SeedDataset, settings: Settings):
        self.dataset = dataset
        self.settings = settings
        self._results: Dict[Stage, Any] = {}
        self._frozen = False

    # =========================================================================
    # SLOTS
    # =========================================================================

    def publish(self, stage: Stage, result: Any) -> None:
        """Store a stage result; its dependencies must already be published"""
        if self._frozen:
            raise StageAlreadyPublishedError(stage.value, "context is frozen")
        if stage in self._results:
            raise StageAlreadyPublishedError(stage.value)
        missing = [dep.value for dep in STAGE_DEPENDENCIES[stage] if dep not in self._results]
        if missing:
            raise StageNotReadyError(stage.value, missing)
        self._results[stage] = result
        logger.debug("Stage published", stage=stage.value)

    def get(self, stage: Stage) -> Any:
        if stage not in self._results:
            raise StageNotReadyError(stage.value)
        return self._results[stage]

    def is_ready(self, stage: Stage) -> bool:
        return stage in self._results

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def published(self) -> List[Stage]:
        return list(self._results)

    # =========================================================================
    # SNAPSHOT ACCESSORS
    # =========================================================================

    @property
    def orders(self):
        return self.get(Stage.ORDERS)

    @property
    def commissions(self):
        return self.get(Stage.COMMISSIONS)

    @property
    def finance(self):
        return self.get(Stage.FINANCE)

    @property
    def inventory(self):
        return self.get(Stage.INVENTORY)

    @property
    def staffing(self):
        return self.get(Stage.STAFFING)

    @property
    def shifts(self):
        return self.get(Stage.SHIFTS)

    @property
    def profit(self):
        return self.get(Stage.PROFIT)

    @property
    def metrics(self):
        return self.get(Stage.METRICS)

    @property
    def intelligence(self):
        return self.get(Stage.INTELLIGENCE)

    @property
    def store_health(self):
        return self.get(Stage.STORE_HEALTH)

    @property
    def partner_insights(self):
        return self.get(Stage.PARTNER_INSIGHTS)

    @property
    def inventory_insights(self):
        return self.get(Stage.INVENTORY_INSIGHTS)

    @property
    def workforce_insights(self):
        return self.get(Stage.WORKFORCE_INSIGHTS)

    @property
    def finance_insights(self):
        return self.get(Stage.FINANCE_INSIGHTS)

    @property
    def priorities(self):
        return self.get(Stage.PRIORITIES)

    @property
    def alerts(self):
        return self.get(Stage.ALERTS)

    @property
    def brief(self):
        return self.get(Stage.BRIEF)

    # =========================================================================
    # SINGLE-ENTITY QUERIES
    # =========================================================================

    def store_health_for(self, store_id: str):
        return self.store_health.health_for(store_id)

    def store_profitability_for(self, store_id: str):
        return self.profit.for_store(store_id)

    def inventory_for(self, store_id: str):
        rows = self.inventory.rows_for_store(store_id)
        if not rows:
            raise EntityNotFoundError("store", store_id)
        return rows

    def staff_for(self, store_id: str):
        return self.staffing.staff_for(store_id)
