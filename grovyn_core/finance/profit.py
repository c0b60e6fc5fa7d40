"""
Profit and Margin Attribution Engine

Combines settlement, consumption and labor into profitability:
- Store: net revenue - ingredient cost - labor cost
- Brand: store costs allocated by the brand's share of store gross
- Item: contribution margin before labor, via the consumption item walk
- Summary: settlement totals plus total profit and overall margin
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import structlog

from grovyn_core.config import Settings, get_settings
from grovyn_core.data.models import SeedDataset
from grovyn_core.exceptions import EntityNotFoundError
from grovyn_core.finance.settlement import FinanceLedger
from grovyn_core.ingestion.orders import OrderBook
from grovyn_core.operations.inventory import InventoryState
from grovyn_core.operations.shifts import ShiftReport

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Profitability:
    """Profitability of a store or brand"""
    entity_id: str
    gross_revenue: float
    net_revenue: float
    ingredient_cost: float
    labor_cost: float
    profit: float
    margin_percent: float


@dataclass(frozen=True)
class ItemMargin:
    """Pre-labor contribution margin of one catalog item"""
    item_id: str
    revenue: float
    ingredient_cost: float
    commission: float
    margin: float
    margin_percent: float


@dataclass(frozen=True)
class ProfitSummary:
    total_gross_revenue: float
    total_net_revenue: float
    total_commission: float
    total_discount: float
    total_profit: float
    overall_margin_percent: float


def margin_percent(profit: float, gross: float) -> float:
    """profit / gross x 100, 0 when gross is 0"""
    return round((profit / gross) * 100, 2) if gross > 0 else 0.0


class ProfitReport:
    """Store, brand and item profitability plus the global summary"""

    def __init__(
        self,
        stores: List[Profitability],
        brands: List[Profitability],
        items: List[ItemMargin],
        summary: ProfitSummary,
    ):
        self.stores: Tuple[Profitability, ...] = tuple(stores)
        self.brands: Tuple[Profitability, ...] = tuple(brands)
        self.items: Tuple[ItemMargin, ...] = tuple(items)
        self.summary = summary
        self._stores = {p.entity_id: p for p in stores}
        self._brands = {p.entity_id: p for p in brands}

    def for_store(self, store_id: str) -> Profitability:
        if store_id not in self._stores:
            raise EntityNotFoundError("store", store_id)
        return self._stores[store_id]

    def for_brand(self, brand_id: str) -> Profitability:
        if brand_id not in self._brands:
            raise EntityNotFoundError("brand", brand_id)
        return self._brands[brand_id]

    @property
    def baseline_margin_percent(self) -> float:
        """Network margin used as the leakage baseline (unrounded)"""
        gross = self.summary.total_gross_revenue
        return (self.summary.total_profit / gross) * 100 if gross > 0 else 0.0


class ProfitEngine:
    """
    Profit attribution over frozen upstream stage results.

    Example:
        engine = ProfitEngine(finance, inventory, shifts, order_book, dataset, settings)
        report = engine.run()
    """

    def __init__(
        self,
        finance: FinanceLedger,
        inventory: InventoryState,
        shifts: ShiftReport,
        order_book: OrderBook,
        dataset: SeedDataset,
        settings: Optional[Settings] = None,
    ):
        self.finance = finance
        self.inventory = inventory
        self.shifts = shifts
        self.order_book = order_book
        self.dataset = dataset
        self.settings = settings or get_settings()
        self.unit_costs = self.settings.costs.ingredient_unit_cost

    def ingredient_cost_for_store(self, store_id: str) -> float:
        consumed = self.inventory.consumed_by_store(store_id)
        return round(sum(qty * self.unit_costs.get(ing, 0.0) for ing, qty in consumed.items()), 2)

    def labor_cost_for_store(self, store_id: str) -> float:
        costs = self.settings.costs
        return round(sum(
            m.utilization * costs.base_hourly_rate * costs.shift_hours
            for m in self.shifts.metrics_for_store(store_id)
        ), 2)

    def store_profitability(self) -> List[Profitability]:
        revenue: Dict[str, List[float]] = {store.id: [0.0, 0.0] for store in self.dataset.stores}
        for f in self.finance.financials:
            bucket = revenue.setdefault(f.store_id, [0.0, 0.0])
            bucket[0] += f.gross_revenue
            bucket[1] += f.net_revenue

        results = []
        for store_id, (gross, net) in revenue.items():
            ingredient = self.ingredient_cost_for_store(store_id)
            labor = self.labor_cost_for_store(store_id)
            profit = round(net - ingredient - labor, 2)
            results.append(Profitability(
                entity_id=store_id,
                gross_revenue=round(gross, 2),
                net_revenue=round(net, 2),
                ingredient_cost=ingredient,
                labor_cost=labor,
                profit=profit,
                margin_percent=margin_percent(profit, gross),
            ))
        return results

    def brand_profitability(self, stores: List[Profitability]) -> List[Profitability]:
        """Allocate each store's costs to brands by share of store gross"""
        store_by_id = {s.entity_id: s for s in stores}
        gross: Dict[str, float] = {}
        net: Dict[str, float] = {}
        gross_in_store: Dict[str, Dict[str, float]] = {}
        for f in self.finance.financials:
            gross[f.brand_id] = gross.get(f.brand_id, 0.0) + f.gross_revenue
            net[f.brand_id] = net.get(f.brand_id, 0.0) + f.net_revenue
            per_store = gross_in_store.setdefault(f.brand_id, {})
            per_store[f.store_id] = per_store.get(f.store_id, 0.0) + f.gross_revenue

        results = []
        for brand_id, brand_gross in gross.items():
            ingredient = 0.0
            labor = 0.0
            for store_id, share_gross in gross_in_store[brand_id].items():
                store = store_by_id.get(store_id)
                if store is None or store.gross_revenue == 0:
                    continue
                share = share_gross / store.gross_revenue
                ingredient += store.ingredient_cost * share
                labor += store.labor_cost * share
            profit = round(net[brand_id] - ingredient - labor, 2)
            results.append(Profitability(
                entity_id=brand_id,
                gross_revenue=round(brand_gross, 2),
                net_revenue=round(net[brand_id], 2),
                ingredient_cost=round(ingredient, 2),
                labor_cost=round(labor, 2),
                profit=profit,
                margin_percent=margin_percent(profit, brand_gross),
            ))
        return results

    def item_margins(self) -> List[ItemMargin]:
        """Walk orders in replay order using the consumption item assignment"""
        revenue: Dict[str, float] = {}
        ingredient: Dict[str, float] = {}
        commission: Dict[str, float] = {}

        for order in self.order_book.in_replay_order():
            item_id = self.inventory.item_for_order(order.order_id)
            financial = self.finance.for_order(order.order_id)
            if item_id is None or financial is None:
                continue
            revenue[item_id] = revenue.get(item_id, 0.0) + financial.gross_revenue
            commission[item_id] = commission.get(item_id, 0.0) + financial.commission_cost
            ingredient[item_id] = ingredient.get(item_id, 0.0) + self.inventory.bom.ingredient_cost(
                item_id, self.unit_costs
            )

        results = []
        for item_id, item_revenue in revenue.items():
            rounded_revenue = round(item_revenue, 2)
            cost = round(ingredient[item_id], 2)
            paid = round(commission[item_id], 2)
            margin = round(rounded_revenue - cost - paid, 2)
            results.append(ItemMargin(
                item_id=item_id,
                revenue=rounded_revenue,
                ingredient_cost=cost,
                commission=paid,
                margin=margin,
                margin_percent=margin_percent(margin, rounded_revenue),
            ))
        return results

    def run(self) -> ProfitReport:
        stores = self.store_profitability()
        brands = self.brand_profitability(stores)
        items = self.item_margins()

        totals = self.finance.summary
        total_profit = round(sum(s.profit for s in stores), 2)
        summary = ProfitSummary(
            total_gross_revenue=totals.total_gross_revenue,
            total_net_revenue=totals.total_net_revenue,
            total_commission=totals.total_commission,
            total_discount=totals.total_discount,
            total_profit=total_profit,
            overall_margin_percent=margin_percent(total_profit, totals.total_gross_revenue),
        )

        logger.info(
            "Profit attributed",
            labor_rate=self.settings.costs.base_hourly_rate,
            shift_hours=self.settings.costs.shift_hours,
            stores=len(stores),
            brands=len(brands),
            items=len(items),
            total_profit=summary.total_profit,
            overall_margin_percent=summary.overall_margin_percent,
        )
        return ProfitReport(stores, brands, items, summary)


def attribute_profit(
    finance: FinanceLedger,
    inventory: InventoryState,
    shifts: ShiftReport,
    order_book: OrderBook,
    dataset: SeedDataset,
    settings: Optional[Settings] = None,
) -> ProfitReport:
    """Convenience function to run the profit engine"""
    return ProfitEngine(finance, inventory, shifts, order_book, dataset, settings).run()
