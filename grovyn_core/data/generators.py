"""
Deterministic Seed Generator

Generates the synthetic retail universe the pipeline runs on:
- Cities and stores
- Brands per store and catalog items per brand
- Customers (display names and phones from a seeded Faker)
- Orders, half of them inside the recent window

Same settings => same dataset. Timestamps are anchored to the configured
anchor date, never to the wall clock.
"""

from datetime import datetime, time, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set

import polars as pl
import structlog
from faker import Faker

from grovyn_core.config import Settings, get_settings
from grovyn_core.data.models import (
    Brand,
    City,
    Customer,
    Item,
    RawOrder,
    SeedDataset,
    Store,
    load_seed_dataset,
)
from grovyn_core.data.random import SeededRandom

logger = structlog.get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

CITY_NAMES = ["Mumbai", "Delhi", "Bangalore", "Hyderabad", "Chennai", "Kolkata", "Pune", "Ahmedabad"]
STORE_NAME_PARTS = ["Central", "North", "South", "East", "West", "Hub", "Cloud Kitchen"]
BRAND_NAME_PARTS = ["Spice", "Bowl", "Fresh", "Bite", "Chef", "Kitchen", "Eats", "Grill"]
ITEM_NAMES = [
    "Biryani", "Curry", "Naan", "Rice Bowl", "Wrap", "Salad",
    "Soup", "Snack", "Combo", "Beverage", "Dessert", "Breakfast",
]
STORE_STATUSES = ["active", "active", "active", "paused", "maintenance"]

ORDER_AMOUNT_RANGE = (150.0, 2500.0)
ITEM_COST_RANGE = (50.0, 200.0)
ITEM_MARKUP_RANGE = (1.3, 2.2)
BRAND_COMMISSION_RANGE = (5.0, 25.0)
CUSTOMER_HISTORY_DAYS = 365


# =============================================================================
# GENERATOR
# =============================================================================

class SeedGenerator:
    """
    Deterministic generator for the seed universe.

    A single Mulberry32 stream drives every structural choice, so the
    dataset depends only on `settings.seed`.

    Example:
        dataset = SeedGenerator(settings).generate()
        print(len(dataset.orders))
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.config = self.settings.seed
        self.rng = SeededRandom(self.config.random_seed)
        self.fake = Faker("en_IN")
        self.fake.seed_instance(self.config.random_seed)
        self._anchor = datetime.combine(self.config.anchor_date, time(0, 0), tzinfo=timezone.utc)
        self._issued_ids: Set[str] = set()

    def _id(self, prefix: str) -> str:
        while True:
            digits = "".join(format(self.rng.randint(0, 15), "x") for _ in range(8))
            candidate = f"{prefix}_{digits}"
            if candidate not in self._issued_ids:
                self._issued_ids.add(candidate)
                return candidate

    def _timestamp_days_ago(self, max_days_ago: int) -> datetime:
        days_ago = self.rng.randint(0, max_days_ago)
        hour = self.rng.randint(0, 23)
        minute = self.rng.randint(0, 59)
        second = self.rng.randint(0, 59)
        return self._anchor - timedelta(days=days_ago) + timedelta(hours=hour, minutes=minute, seconds=second)

    def _order_timestamp(self) -> datetime:
        # Half of the orders land in the recent window for realistic WoW signals
        if self.rng.uniform(0, 1, 4) < 0.5:
            return self._timestamp_days_ago(self.config.recent_days)
        return self._timestamp_days_ago(self.config.history_days)

    def generate_cities(self) -> List[City]:
        """Generate cities"""
        cities = []
        for i in range(self.config.cities):
            name = CITY_NAMES[i % len(CITY_NAMES)]
            if i >= len(CITY_NAMES):
                name = f"{name} {i + 1}"
            cities.append(City(id=self._id("city"), name=name))
        return cities

    def generate_stores(self, cities: List[City]) -> List[Store]:
        """Generate stores for every city"""
        stores = []
        for city in cities:
            for _ in range(self.config.stores_per_city):
                name = f"{self.rng.choice(STORE_NAME_PARTS)} {self.rng.choice(STORE_NAME_PARTS)}"
                stores.append(Store(
                    id=self._id("store"),
                    city_id=city.id,
                    name=name,
                    status=self.rng.choice(STORE_STATUSES),
                    operating_hours=self.config.operating_hours,
                ))
        return stores

    def generate_brands(self, stores: List[Store]) -> List[Brand]:
        """Generate brands for every store"""
        brands = []
        for store in stores:
            for _ in range(self.config.brands_per_store):
                name = f"{self.rng.choice(BRAND_NAME_PARTS)} {self.rng.choice(BRAND_NAME_PARTS)}"
                brands.append(Brand(
                    id=self._id("brand"),
                    store_id=store.id,
                    name=name,
                    commission_rate=self.rng.uniform(*BRAND_COMMISSION_RANGE),
                ))
        return brands

    def generate_items(self, brands: List[Brand]) -> List[Item]:
        """Generate catalog items for every brand"""
        items = []
        for brand in brands:
            for _ in range(self.config.items_per_brand):
                name = f"{self.rng.choice(ITEM_NAMES)} {self.rng.randint(1, 99)}"
                cost = self.rng.uniform(*ITEM_COST_RANGE)
                price = round(cost * self.rng.uniform(*ITEM_MARKUP_RANGE), 2)
                items.append(Item(id=self._id("sku"), brand_id=brand.id, name=name, price=price, cost=cost))
        return items

    def generate_customers(self) -> List[Customer]:
        """Generate customers"""
        customers = []
        for _ in range(self.config.customers):
            customers.append(Customer(
                id=self._id("cust"),
                name=self.fake.name(),
                phone=self.fake.phone_number(),
                created_at=self._timestamp_days_ago(CUSTOMER_HISTORY_DAYS),
            ))
        return customers

    def generate_orders(
        self,
        stores: List[Store],
        brands: List[Brand],
        customers: List[Customer],
    ) -> List[RawOrder]:
        """Generate orders referencing existing stores, brands and customers"""
        brands_by_store: Dict[str, List[Brand]] = {}
        for brand in brands:
            brands_by_store.setdefault(brand.store_id, []).append(brand)

        orders = []
        for _ in range(self.config.orders):
            store = self.rng.choice(stores)
            brand = self.rng.choice(brands_by_store[store.id])
            orders.append(RawOrder(
                id=self._id("ord"),
                store_id=store.id,
                brand_id=brand.id,
                customer_id=self.rng.choice(customers).id,
                total_amount=self.rng.uniform(*ORDER_AMOUNT_RANGE),
                created_at=self._order_timestamp(),
            ))
        return orders

    def generate(self) -> SeedDataset:
        """Generate the complete seed universe"""
        cities = self.generate_cities()
        stores = self.generate_stores(cities)
        brands = self.generate_brands(stores)
        items = self.generate_items(brands)
        customers = self.generate_customers()
        orders = self.generate_orders(stores, brands, customers)

        dataset = load_seed_dataset({
            "cities": cities,
            "stores": stores,
            "brands": brands,
            "items": items,
            "customers": customers,
            "orders": orders,
        })

        logger.info(
            "Seed data generated",
            seed=self.config.random_seed,
            cities=len(cities),
            stores=len(stores),
            brands=len(brands),
            items=len(items),
            customers=len(customers),
            orders=len(orders),
        )
        return dataset


# =============================================================================
# EXPORT
# =============================================================================

def dataset_to_frames(dataset: SeedDataset) -> Dict[str, pl.DataFrame]:
    """Convert each seed collection into a polars DataFrame"""
    collections = {
        "cities": dataset.cities,
        "stores": dataset.stores,
        "brands": dataset.brands,
        "items": dataset.items,
        "customers": dataset.customers,
        "orders": dataset.orders,
    }
    return {
        name: pl.from_dicts([record.model_dump() for record in records])
        for name, records in collections.items()
    }


def export_dataset(dataset: SeedDataset, output_dir: str) -> Dict[str, Path]:
    """
    Save the seed universe as Parquet files, one per collection.

    Args:
        dataset: Seed dataset to export
        output_dir: Target directory (created if missing)

    Returns:
        Mapping of collection name to written path
    """
    target = Path(output_dir)
    target.mkdir(parents=True, exist_ok=True)

    written = {}
    for name, df in dataset_to_frames(dataset).items():
        path = target / f"{name}.parquet"
        df.write_parquet(path)
        written[name] = path
        logger.info("Seed collection exported", collection=name, rows=len(df), path=str(path))
    return written


def generate_seed_data(settings: Optional[Settings] = None) -> SeedDataset:
    """Convenience function to generate the seed universe"""
    return SeedGenerator(settings).generate()
