"""
Order Normalization

Maps raw seed orders to the internal order shape:
- Deterministic channel/partner assignment by ingestion position
- Canonical replay order (timestamp, then order id) computed once
- Both positions carried on every order as explicit fields

Later stages never re-derive position: discount simulation reads
`ingestion_index`, item assignment reads `replay_index`.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

import polars as pl
import structlog

from grovyn_core.config import Settings, get_settings
from grovyn_core.data.models import SeedDataset
from grovyn_core.exceptions import SeedDataError

logger = structlog.get_logger(__name__)

DIRECT = "DIRECT"


class Channel(str, Enum):
    """Order channel"""
    DIRECT = "DIRECT"
    PARTNER = "PARTNER"


@dataclass(frozen=True)
class NormalizedOrder:
    """Order after channel assignment, with explicit replay positions"""
    order_id: str
    store_id: str
    brand_id: str
    customer_id: str
    amount: float
    channel: Channel
    partner_id: Optional[str]
    created_at: datetime
    ingestion_index: int
    replay_index: int = -1

    def __post_init__(self):
        if self.channel == Channel.PARTNER and not self.partner_id:
            raise ValueError(f"Partner order {self.order_id} has no partner id")
        if self.channel == Channel.DIRECT and self.partner_id is not None:
            raise ValueError(f"Direct order {self.order_id} carries partner id {self.partner_id}")

    @property
    def partner_key(self) -> str:
        """Partner id, or DIRECT for direct orders"""
        return self.partner_id or DIRECT

    @property
    def order_date(self) -> date:
        return self.created_at.date()

    @property
    def hour(self) -> int:
        return self.created_at.hour


ORDER_FRAME_SCHEMA = {
    "order_id": pl.Utf8,
    "store_id": pl.Utf8,
    "brand_id": pl.Utf8,
    "customer_id": pl.Utf8,
    "amount": pl.Float64,
    "channel": pl.Utf8,
    "partner_key": pl.Utf8,
    "order_date": pl.Date,
    "hour": pl.Int64,
    "ingestion_index": pl.Int64,
    "replay_index": pl.Int64,
}


class OrderBook:
    """
    Immutable collection of normalized orders.

    Holds the orders in ingestion order and, separately, in canonical replay
    order. Date helpers are all calendar-day (UTC) based.
    """

    def __init__(self, orders: List[NormalizedOrder], skipped: int = 0):
        self._orders: Tuple[NormalizedOrder, ...] = tuple(orders)
        self._replay: Tuple[NormalizedOrder, ...] = tuple(sorted(orders, key=lambda o: o.replay_index))
        self._by_id: Dict[str, NormalizedOrder] = {o.order_id: o for o in orders}
        self.skipped = skipped
        self._frame: Optional[pl.DataFrame] = None

    def __len__(self) -> int:
        return len(self._orders)

    @property
    def orders(self) -> Tuple[NormalizedOrder, ...]:
        """Orders in ingestion order"""
        return self._orders

    def in_replay_order(self) -> Tuple[NormalizedOrder, ...]:
        """Orders sorted by (timestamp, order id)"""
        return self._replay

    def get(self, order_id: str) -> Optional[NormalizedOrder]:
        return self._by_id.get(order_id)

    @property
    def reference_date(self) -> date:
        """Maximum order date; the pipeline's notion of "today" """
        return max(o.order_date for o in self._orders)

    @property
    def distinct_dates(self) -> List[date]:
        return sorted({o.order_date for o in self._orders})

    def orders_for_store(self, store_id: str) -> List[NormalizedOrder]:
        return [o for o in self._orders if o.store_id == store_id]

    def channel_counts(self) -> Dict[str, int]:
        """Order counts per partner key"""
        counts: Dict[str, int] = {}
        for order in self._orders:
            counts[order.partner_key] = counts.get(order.partner_key, 0) + 1
        return counts

    def to_frame(self) -> pl.DataFrame:
        """Orders as a polars DataFrame (ingestion order), cached"""
        if self._frame is None:
            rows = [
                {
                    "order_id": o.order_id,
                    "store_id": o.store_id,
                    "brand_id": o.brand_id,
                    "customer_id": o.customer_id,
                    "amount": o.amount,
                    "channel": o.channel.value,
                    "partner_key": o.partner_key,
                    "order_date": o.order_date,
                    "hour": o.hour,
                    "ingestion_index": o.ingestion_index,
                    "replay_index": o.replay_index,
                }
                for o in self._orders
            ]
            self._frame = pl.from_dicts(rows, schema=ORDER_FRAME_SCHEMA)
        return self._frame


def assign_channel(index: int, rotation: List[str]) -> Tuple[Channel, Optional[str]]:
    """Channel and partner id for the order at ingestion position `index`"""
    key = rotation[index % len(rotation)]
    if key == DIRECT:
        return Channel.DIRECT, None
    return Channel.PARTNER, key


def normalize_orders(dataset: SeedDataset, settings: Optional[Settings] = None) -> OrderBook:
    """
    Normalize raw seed orders.

    Orders referencing an unknown store are skipped and logged. The
    ingestion index counts accepted orders only.

    Args:
        dataset: Validated seed dataset
        settings: Pipeline settings

    Returns:
        OrderBook with ingestion and replay positions assigned

    Raises:
        SeedDataError: If no order references a known store
    """
    settings = settings or get_settings()
    rotation = settings.commission.channel_rotation
    stores = dataset.store_index()

    accepted = []
    skipped = 0
    for raw in dataset.orders:
        if raw.store_id not in stores:
            skipped += 1
            logger.warning("Order skipped: unknown store", order_id=raw.id, store_id=raw.store_id)
            continue
        accepted.append(raw)

    if not accepted:
        raise SeedDataError("No seed order references a known store")

    replay_positions = [0] * len(accepted)
    for position, index in enumerate(
        sorted(range(len(accepted)), key=lambda i: (accepted[i].created_at, accepted[i].id))
    ):
        replay_positions[index] = position

    orders = []
    for index, raw in enumerate(accepted):
        channel, partner_id = assign_channel(index, rotation)
        orders.append(NormalizedOrder(
            order_id=raw.id,
            store_id=raw.store_id,
            brand_id=raw.brand_id,
            customer_id=raw.customer_id,
            amount=raw.total_amount,
            channel=channel,
            partner_id=partner_id,
            created_at=raw.created_at,
            ingestion_index=index,
            replay_index=replay_positions[index],
        ))

    book = OrderBook(orders, skipped=skipped)
    logger.info(
        "Orders normalized",
        total=len(book),
        skipped=skipped,
        by_channel=book.channel_counts(),
    )
    return book
