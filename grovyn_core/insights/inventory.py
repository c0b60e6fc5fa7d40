"""
Inventory Insights

Per (store, ingredient) ledger row:
- LOW_STOCK: days remaining below threshold (critical below one day),
  with a suggested reorder quantity covering a week of consumption
- OVERSTOCK: stock above a multiple of weekly consumption
- WASTE_RISK: the store's items that use the ingredient sell too little
"""

import math
from typing import Dict, List, Optional, Set

import structlog

from grovyn_core.config import Settings, get_settings
from grovyn_core.data.models import SeedDataset
from grovyn_core.insights.models import EntityType, Insight, InsightDomain, Severity, evaluation_timestamp
from grovyn_core.operations.inventory import MAX_DAYS_REMAINING, InventoryState

logger = structlog.get_logger(__name__)


def round_to_unit(value: float, unit: str) -> float:
    """Whole pieces for `pcs` (halves round up), two decimals otherwise; never negative"""
    if unit == "pcs":
        return float(max(0, math.floor(value + 0.5)))
    return max(0.0, round(value, 2))


def items_using_ingredient(
    store_id: str,
    dataset: SeedDataset,
    inventory: InventoryState,
) -> Dict[str, Set[str]]:
    """Ingredient id -> ids of the store's catalog items whose BOM uses it"""
    items_by_brand = dataset.items_by_brand()
    mapping: Dict[str, Set[str]] = {}
    for brand in dataset.brands_by_store().get(store_id, []):
        for item in items_by_brand.get(brand.id, []):
            for line in inventory.bom.for_item(item.id):
                mapping.setdefault(line.ingredient_id, set()).add(item.id)
    return mapping


def evaluate_inventory(
    inventory: InventoryState,
    dataset: SeedDataset,
    reference_date,
    settings: Optional[Settings] = None,
) -> List[Insight]:
    """Scan the ledger for stock and waste risks"""
    settings = settings or get_settings()
    t = settings.insights
    evaluated_at = evaluation_timestamp(reference_date)
    store_names = {store.id: store.name for store in dataset.stores}
    usage_by_store = {store.id: items_using_ingredient(store.id, dataset, inventory) for store in dataset.stores}

    insights = []
    for row in inventory.rows:
        base = dict(
            domain=InsightDomain.INVENTORY,
            evaluated_at=evaluated_at,
            store_id=row.store_id,
            store_name=store_names.get(row.store_id),
            entity_type=EntityType.INGREDIENT,
            entity_id=row.ingredient_id,
        )
        weekly = row.avg_weekly_consumption

        if row.days_remaining < t.low_stock_days and row.days_remaining < MAX_DAYS_REMAINING:
            insights.append(Insight(
                type="LOW_STOCK",
                severity=Severity.CRITICAL if row.days_remaining < t.critical_stock_days else Severity.WARNING,
                message=(
                    f"{row.ingredient_name}: days of stock remaining ({row.days_remaining:.1f}) "
                    f"below {t.low_stock_days:g}. Consider reordering."
                ),
                details={
                    "suggested_reorder_quantity": round_to_unit(max(0.0, weekly - row.current_stock), row.unit),
                    "unit": row.unit,
                    "current_stock": row.current_stock,
                },
                **base,
            ))

        if weekly > 0 and row.current_stock > t.overstock_multiplier * weekly:
            insights.append(Insight(
                type="OVERSTOCK",
                severity=Severity.INFO,
                message=(
                    f"{row.ingredient_name}: current stock ({row.current_stock:.2f} {row.unit}) exceeds "
                    f"{t.overstock_multiplier:g}x average weekly consumption ({weekly:.2f} {row.unit})."
                ),
                details={"current_stock": row.current_stock, "avg_weekly_consumption": round(weekly, 2)},
                **base,
            ))

        item_ids = usage_by_store[row.store_id].get(row.ingredient_id, set())
        item_orders = sum(inventory.order_count_by_item.get(item_id, 0) for item_id in item_ids)
        if item_ids and item_orders < t.waste_order_volume:
            insights.append(Insight(
                type="WASTE_RISK",
                severity=Severity.WARNING if item_orders < t.waste_warning_volume else Severity.INFO,
                message=(
                    f"{row.ingredient_name}: used in items with low total order volume "
                    f"({item_orders} orders). Risk of waste if not used."
                ),
                details={"item_count": len(item_ids), "item_orders": item_orders},
                **base,
            ))

    for insight in insights:
        logger.debug("Insight emitted", domain=insight.domain.value, type=insight.type,
                     severity=insight.severity.value, store_id=insight.store_id, ingredient_id=insight.entity_id)
    logger.info("Inventory insights evaluated", ledger_rows=len(inventory.rows), insights=len(insights))
    return insights
