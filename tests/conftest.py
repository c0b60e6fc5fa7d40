"""
Test Suite Configuration
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from grovyn_core.config import Settings
from grovyn_core.config.settings import SeedSettings
from grovyn_core.data.models import SeedDataset, load_seed_dataset
from grovyn_core.pipeline import PipelineContext, boot

REFERENCE = datetime(2025, 6, 30, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings with a reduced seed universe"""
    return Settings(
        app_env="testing",
        seed=SeedSettings(
            random_seed=42,
            cities=1,
            stores_per_city=2,
            brands_per_store=2,
            items_per_brand=5,
            customers=200,
            orders=600,
        ),
    )


@pytest.fixture(scope="session")
def booted(test_settings) -> PipelineContext:
    """Pipeline booted once over the generated seed universe"""
    return boot(test_settings)


def build_dataset(orders: List[Dict], stores: Optional[List[str]] = None) -> SeedDataset:
    """
    Small hand-built dataset.

    Each order dict needs `store`, `customer` and `amount`; `days_ago`
    (relative to REFERENCE), `hour`, `brand` and `id` are optional.
    """
    stores = stores or sorted({o["store"] for o in orders})
    brands = [{"id": f"brand_{s}", "store_id": s, "name": f"Brand {s}", "commission_rate": 0.15} for s in stores]
    items = [
        {"id": f"item_{s}_{n}", "brand_id": f"brand_{s}", "name": f"Item {n}", "price": 200.0, "cost": 80.0}
        for s in stores
        for n in range(3)
    ]
    customers = sorted({o["customer"] for o in orders})

    raw_orders = []
    for index, order in enumerate(orders):
        created_at = (REFERENCE - timedelta(days=order.get("days_ago", 0))).replace(hour=order.get("hour", 10))
        raw_orders.append({
            "id": order.get("id", f"ord_{index:04d}"),
            "store_id": order["store"],
            "brand_id": order.get("brand", f"brand_{order['store']}"),
            "customer_id": order["customer"],
            "total_amount": order["amount"],
            "created_at": created_at,
        })

    return load_seed_dataset({
        "cities": [{"id": "city_1", "name": "Bengaluru"}],
        "stores": [{"id": s, "city_id": "city_1", "name": f"Kitchen {s}"} for s in stores],
        "brands": brands,
        "items": items,
        "customers": [{"id": c, "name": c, "created_at": REFERENCE - timedelta(days=120)} for c in customers],
        "orders": raw_orders,
    })


@pytest.fixture
def dataset_factory():
    """Factory for small hand-built datasets"""
    return build_dataset


@pytest.fixture
def small_dataset() -> SeedDataset:
    """Two stores, a week of orders, a handful of customers"""
    orders = []
    for day in range(7):
        for n in range(4):
            orders.append({
                "store": "store_a" if n % 2 == 0 else "store_b",
                "customer": f"cust_{(day + n) % 5}",
                "amount": 100.0 + 10 * n,
                "days_ago": day,
                "hour": 9 + 3 * n,
            })
    return build_dataset(orders)
