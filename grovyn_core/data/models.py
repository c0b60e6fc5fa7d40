"""
Seed Entity Models

Pydantic models for the raw seed universe consumed by the pipeline. The
seed supply is the only external input; it is validated once at boot and
an empty or malformed supply is fatal.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator, model_validator

from grovyn_core.exceptions import SeedDataError


class _SeedEntity(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class City(_SeedEntity):
    """Operating city"""
    id: str
    name: str
    country: str = "India"
    timezone: str = "Asia/Kolkata"


class Store(_SeedEntity):
    """Physical kitchen location"""
    id: str
    city_id: str
    name: str
    status: str = "active"
    operating_hours: str = "08:00-22:00"


class Brand(_SeedEntity):
    """Virtual brand operated out of one store"""
    id: str
    store_id: str
    name: str
    commission_rate: float = Field(default=0.0, ge=0)


class Item(_SeedEntity):
    """Catalog item (SKU) sold under a brand"""
    id: str
    brand_id: str
    name: str
    price: float = Field(ge=0)
    cost: float = Field(ge=0)


class Customer(_SeedEntity):
    """Ordering customer"""
    id: str
    name: str = ""
    phone: str = ""
    created_at: Optional[datetime] = None


class RawOrder(_SeedEntity):
    """Raw transaction as supplied by the seed generator"""
    id: str
    store_id: str
    brand_id: str
    customer_id: str
    total_amount: float = Field(gt=0)
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are treated as UTC"""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def order_date(self) -> date:
        return self.created_at.date()


class SeedDataset(_SeedEntity):
    """
    Complete seed universe.

    Every collection must be non-empty with unique ids; construction through
    `load_seed_dataset` converts validation failures into SeedDataError.
    """
    cities: List[City]
    stores: List[Store]
    brands: List[Brand]
    items: List[Item]
    customers: List[Customer]
    orders: List[RawOrder]

    @field_validator("cities", "stores", "brands", "items", "customers", "orders")
    @classmethod
    def not_empty(cls, v: List[Any], info: ValidationInfo) -> List[Any]:
        if not v:
            raise ValueError(f"seed collection '{info.field_name}' is empty")
        return v

    @model_validator(mode="after")
    def unique_ids(self) -> "SeedDataset":
        for name in ("cities", "stores", "brands", "items", "customers", "orders"):
            seen = set()
            for record in getattr(self, name):
                if record.id in seen:
                    raise ValueError(f"duplicate id '{record.id}' in seed collection '{name}'")
                seen.add(record.id)
        return self

    def store_index(self) -> Dict[str, Store]:
        return {store.id: store for store in self.stores}

    def brand_index(self) -> Dict[str, Brand]:
        return {brand.id: brand for brand in self.brands}

    def items_by_brand(self) -> Dict[str, List[Item]]:
        """Items grouped by brand, preserving catalog order"""
        grouped: Dict[str, List[Item]] = {}
        for item in self.items:
            grouped.setdefault(item.brand_id, []).append(item)
        return grouped

    def brands_by_store(self) -> Dict[str, List[Brand]]:
        grouped: Dict[str, List[Brand]] = {}
        for brand in self.brands:
            grouped.setdefault(brand.store_id, []).append(brand)
        return grouped


def load_seed_dataset(payload: Mapping[str, Any]) -> SeedDataset:
    """
    Validate a raw mapping of seed collections.

    Args:
        payload: Mapping with cities, stores, brands, items, customers, orders

    Returns:
        Validated SeedDataset

    Raises:
        SeedDataError: If any collection is missing, empty or malformed
    """
    if not payload:
        raise SeedDataError("Seed payload is empty")
    try:
        return SeedDataset.model_validate(dict(payload))
    except ValidationError as e:
        raise SeedDataError(f"Seed payload is malformed: {e.error_count()} error(s)\n{e}") from e
