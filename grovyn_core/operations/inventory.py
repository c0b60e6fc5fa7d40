"""
Consumption Simulation and Inventory Ledger

- Fixed ingredient catalog
- Bill of materials per item, seeded from the item id and memoized
- Per-(store, ingredient) ledger seeded from the store and ingredient ids
- Replay of all orders in canonical order, depleting the ledger

Item assignment is round-robin over the brand's catalog by the order's
replay index; the same walk is reused by item-level profit attribution.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import structlog

from grovyn_core.config import Settings, get_settings
from grovyn_core.data.models import Item, SeedDataset, Store
from grovyn_core.data.random import SeededRandom, derive_seed
from grovyn_core.ingestion.orders import NormalizedOrder, OrderBook

logger = structlog.get_logger(__name__)


# =============================================================================
# CATALOG
# =============================================================================

@dataclass(frozen=True)
class Ingredient:
    id: str
    name: str
    unit: str


INGREDIENTS: Tuple[Ingredient, ...] = (
    Ingredient("ing_chicken", "Chicken", "kg"),
    Ingredient("ing_rice", "Rice", "kg"),
    Ingredient("ing_oil", "Oil", "L"),
    Ingredient("ing_spices", "Spices", "kg"),
    Ingredient("ing_packaging", "Packaging", "pcs"),
    Ingredient("ing_vegetables", "Vegetables", "kg"),
    Ingredient("ing_sauce", "Sauce", "L"),
    Ingredient("ing_flour", "Flour", "kg"),
    Ingredient("ing_dairy", "Dairy", "L"),
    Ingredient("ing_lentils", "Lentils", "kg"),
)

INGREDIENTS_BY_ID: Dict[str, Ingredient] = {ing.id: ing for ing in INGREDIENTS}

REORDER_THRESHOLD = 5
BASE_CAPACITY = 50
MAX_DAYS_REMAINING = 999.0


@dataclass(frozen=True)
class BOMLine:
    ingredient_id: str
    quantity_per_order: float


class BillOfMaterialsCatalog:
    """
    Deterministic bill of materials per catalog item.

    Each item uses 2-4 distinct ingredients. Quantities depend on the unit:
    whole pieces for `pcs`, 0.02-0.15 for litres, 0.05-0.40 for kilograms.
    """

    def __init__(self, global_seed: int):
        self.global_seed = global_seed
        self._cache: Dict[str, Tuple[BOMLine, ...]] = {}

    def for_item(self, item_id: str) -> Tuple[BOMLine, ...]:
        if item_id not in self._cache:
            self._cache[item_id] = self._build(item_id)
        return self._cache[item_id]

    def _build(self, item_id: str) -> Tuple[BOMLine, ...]:
        rng = SeededRandom(derive_seed(item_id, self.global_seed))
        count = rng.randint(2, 4)
        picked = set()
        lines = []
        while len(lines) < count:
            ingredient = rng.choice(INGREDIENTS)
            if ingredient.id in picked:
                continue
            picked.add(ingredient.id)
            if ingredient.unit == "pcs":
                quantity = float(rng.randint(1, 3))
            elif ingredient.unit == "L":
                quantity = rng.uniform(0.02, 0.15)
            else:
                quantity = rng.uniform(0.05, 0.4)
            lines.append(BOMLine(ingredient.id, quantity))
        return tuple(lines)

    def ingredient_cost(self, item_id: str, unit_costs: Dict[str, float]) -> float:
        """Ingredient cost of one order of the item"""
        return sum(line.quantity_per_order * unit_costs.get(line.ingredient_id, 0.0) for line in self.for_item(item_id))


# =============================================================================
# LEDGER
# =============================================================================

@dataclass(frozen=True)
class IngredientLedgerRow:
    """Final ledger state of one (store, ingredient) pair"""
    store_id: str
    ingredient_id: str
    ingredient_name: str
    unit: str
    current_stock: float
    reorder_threshold: int
    max_capacity: int
    consumed: float
    avg_daily_consumption: float
    days_remaining: float

    @property
    def avg_weekly_consumption(self) -> float:
        return self.avg_daily_consumption * 7

    def to_dict(self) -> Dict[str, object]:
        return {
            "store_id": self.store_id,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient_name,
            "unit": self.unit,
            "current_stock": self.current_stock,
            "reorder_threshold": self.reorder_threshold,
            "max_capacity": self.max_capacity,
            "avg_daily_consumption": round(self.avg_daily_consumption, 4),
            "days_remaining": round(self.days_remaining, 2),
        }


@dataclass
class _LedgerSlot:
    stock: float
    reorder_threshold: int
    max_capacity: int
    consumed: float = 0.0


def seed_ledger(stores: List[Store], global_seed: int) -> "OrderedDict[Tuple[str, str], _LedgerSlot]":
    """Starting stock for every (store, ingredient)"""
    slots: "OrderedDict[Tuple[str, str], _LedgerSlot]" = OrderedDict()
    for store in stores:
        for ingredient in INGREDIENTS:
            rng = SeededRandom(derive_seed(store.id + ingredient.id, global_seed))
            max_capacity = BASE_CAPACITY + rng.randint(0, 50)
            stock = rng.randint(REORDER_THRESHOLD + 1, max(REORDER_THRESHOLD + 2, max_capacity - 1))
            slots[(store.id, ingredient.id)] = _LedgerSlot(float(stock), REORDER_THRESHOLD, max_capacity)
    return slots


def days_of_stock(stock: float, avg_daily: float) -> float:
    """Days remaining; capped when nothing is consumed"""
    if avg_daily > 0:
        return stock / avg_daily
    return MAX_DAYS_REMAINING if stock > 0 else 0.0


def assign_item(order: NormalizedOrder, items_by_brand: Dict[str, List[Item]]) -> Optional[Item]:
    """Catalog item for an order: round-robin by replay index within the brand"""
    items = items_by_brand.get(order.brand_id)
    if not items:
        return None
    return items[order.replay_index % len(items)]


class InventoryState:
    """Frozen ledger after the full consumption replay"""

    def __init__(
        self,
        rows: List[IngredientLedgerRow],
        item_assignment: Dict[str, str],
        order_count_by_item: Dict[str, int],
        bom: BillOfMaterialsCatalog,
        distinct_days: int,
    ):
        self.rows: Tuple[IngredientLedgerRow, ...] = tuple(rows)
        self.item_assignment = dict(item_assignment)
        self.order_count_by_item = dict(order_count_by_item)
        self.bom = bom
        self.distinct_days = distinct_days
        self._by_key = {(r.store_id, r.ingredient_id): r for r in rows}

    def row(self, store_id: str, ingredient_id: str) -> Optional[IngredientLedgerRow]:
        return self._by_key.get((store_id, ingredient_id))

    def rows_for_store(self, store_id: str) -> List[IngredientLedgerRow]:
        return [r for r in self.rows if r.store_id == store_id]

    def consumed_by_store(self, store_id: str) -> Dict[str, float]:
        """Total quantity consumed per ingredient at one store"""
        return {r.ingredient_id: r.consumed for r in self.rows_for_store(store_id) if r.consumed > 0}

    def item_for_order(self, order_id: str) -> Optional[str]:
        return self.item_assignment.get(order_id)


def simulate_consumption(
    order_book: OrderBook,
    dataset: SeedDataset,
    bom: Optional[BillOfMaterialsCatalog] = None,
    settings: Optional[Settings] = None,
) -> InventoryState:
    """
    Replay every order against the ingredient ledger.

    Stock is decremented per BOM line (3 dp) and floored at zero. Average
    daily consumption uses the number of distinct order dates; every
    (store, ingredient) pair gets derived metrics, consumed or not.
    """
    settings = settings or get_settings()
    global_seed = settings.seed.random_seed
    bom = bom or BillOfMaterialsCatalog(global_seed)
    items_by_brand = dataset.items_by_brand()
    slots = seed_ledger(dataset.stores, global_seed)

    item_assignment: Dict[str, str] = {}
    order_count_by_item: Dict[str, int] = {}
    skipped = 0

    for order in order_book.in_replay_order():
        item = assign_item(order, items_by_brand)
        if item is None:
            skipped += 1
            continue
        item_assignment[order.order_id] = item.id
        order_count_by_item[item.id] = order_count_by_item.get(item.id, 0) + 1

        for line in bom.for_item(item.id):
            slot = slots.get((order.store_id, line.ingredient_id))
            if slot is None:
                continue
            slot.stock = max(0.0, round(slot.stock - line.quantity_per_order, 3))
            slot.consumed += line.quantity_per_order

    if skipped:
        logger.warning("Orders without catalog items skipped during consumption", count=skipped)

    num_days = len(order_book.distinct_dates)
    rows = []
    for (store_id, ingredient_id), slot in slots.items():
        ingredient = INGREDIENTS_BY_ID[ingredient_id]
        avg_daily = slot.consumed / num_days if num_days > 0 else 0.0
        rows.append(IngredientLedgerRow(
            store_id=store_id,
            ingredient_id=ingredient_id,
            ingredient_name=ingredient.name,
            unit=ingredient.unit,
            current_stock=slot.stock,
            reorder_threshold=slot.reorder_threshold,
            max_capacity=slot.max_capacity,
            consumed=slot.consumed,
            avg_daily_consumption=avg_daily,
            days_remaining=days_of_stock(slot.stock, avg_daily),
        ))

    state = InventoryState(rows, item_assignment, order_count_by_item, bom, num_days)
    logger.info(
        "Consumption simulated",
        orders_replayed=len(item_assignment),
        ledger_rows=len(rows),
        ingredients_tracked=len(INGREDIENTS),
        distinct_days=num_days,
    )
    return state
