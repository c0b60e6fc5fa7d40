"""
Shift Utilization

Splits each store's roster into a morning and an evening shift and measures
order load against shift capacity. Utilization is the only input to the
workforce insight rules and to labor cost.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import structlog

from grovyn_core.data.models import SeedDataset
from grovyn_core.ingestion.orders import OrderBook
from grovyn_core.operations.staffing import StaffMember, StaffRoster

logger = structlog.get_logger(__name__)

HOURS_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})-(\d{1,2}):(\d{2})$")
DEFAULT_HOURS = (8, 22)


class Shift(str, Enum):
    MORNING = "morning"
    EVENING = "evening"


@dataclass(frozen=True)
class ShiftAssignment:
    store_id: str
    shift: Shift
    staff_ids: Tuple[str, ...]
    total_capacity: float

    @property
    def staff_count(self) -> int:
        return len(self.staff_ids)


@dataclass(frozen=True)
class ShiftMetrics:
    """Load of one (store, shift)"""
    store_id: str
    shift: Shift
    orders_in_shift: int
    staff_count: int
    total_capacity: float
    orders_per_staff: float
    utilization: float


def parse_operating_hours(operating_hours: Optional[str]) -> Tuple[int, int]:
    """Start and end hour from 'HH:MM-HH:MM'; falls back to 08-22"""
    if not operating_hours:
        return DEFAULT_HOURS
    match = HOURS_PATTERN.match(operating_hours)
    if not match:
        return DEFAULT_HOURS
    return int(match.group(1)), int(match.group(3))


def operating_hours_length(operating_hours: Optional[str]) -> int:
    start, end = parse_operating_hours(operating_hours)
    return end - start


def shift_midpoint(start_hour: int, end_hour: int) -> int:
    return start_hour + (end_hour - start_hour) // 2


def split_roster(store_id: str, staff: List[StaffMember]) -> Tuple[ShiftAssignment, ShiftAssignment]:
    """First half (rounded up) of staff sorted by id work mornings"""
    ordered = sorted(staff, key=lambda m: m.staff_id)
    half = math.ceil(len(ordered) / 2)
    morning, evening = ordered[:half], ordered[half:]
    return (
        ShiftAssignment(store_id, Shift.MORNING, tuple(m.staff_id for m in morning),
                        round(sum(m.capacity_score for m in morning), 2)),
        ShiftAssignment(store_id, Shift.EVENING, tuple(m.staff_id for m in evening),
                        round(sum(m.capacity_score for m in evening), 2)),
    )


class ShiftReport:
    """Assignments and metrics for every (store, shift)"""

    def __init__(self, assignments: List[ShiftAssignment], metrics: List[ShiftMetrics]):
        self.assignments: Tuple[ShiftAssignment, ...] = tuple(assignments)
        self.metrics: Tuple[ShiftMetrics, ...] = tuple(metrics)

    def metrics_for_store(self, store_id: str) -> List[ShiftMetrics]:
        return [m for m in self.metrics if m.store_id == store_id]

    def metric(self, store_id: str, shift: Shift) -> Optional[ShiftMetrics]:
        for m in self.metrics:
            if m.store_id == store_id and m.shift == shift:
                return m
        return None


def compute_shift_metrics(roster: StaffRoster, order_book: OrderBook, dataset: SeedDataset) -> ShiftReport:
    """
    Bucket orders into shifts by UTC hour and compute utilization.

    Morning covers [start, mid), evening [mid, end); orders outside
    operating hours are not counted. A zero capacity is treated as 1.
    """
    stores = dataset.store_index()

    counts: Dict[str, Dict[Shift, int]] = {
        store_id: {Shift.MORNING: 0, Shift.EVENING: 0} for store_id in roster.store_ids
    }
    windows = {
        store_id: parse_operating_hours(stores[store_id].operating_hours if store_id in stores else None)
        for store_id in roster.store_ids
    }

    for order in order_book.orders:
        store_counts = counts.get(order.store_id)
        if store_counts is None:
            continue
        start, end = windows[order.store_id]
        mid = shift_midpoint(start, end)
        if start <= order.hour < mid:
            store_counts[Shift.MORNING] += 1
        elif mid <= order.hour < end:
            store_counts[Shift.EVENING] += 1

    assignments = []
    metrics = []
    for store_id in roster.store_ids:
        for assignment in split_roster(store_id, list(roster.staff_for(store_id))):
            orders_in_shift = counts[store_id][assignment.shift]
            capacity = assignment.total_capacity or 1
            assignments.append(assignment)
            metrics.append(ShiftMetrics(
                store_id=store_id,
                shift=assignment.shift,
                orders_in_shift=orders_in_shift,
                staff_count=assignment.staff_count,
                total_capacity=assignment.total_capacity,
                orders_per_staff=round(orders_in_shift / assignment.staff_count, 2) if assignment.staff_count else 0.0,
                utilization=round(orders_in_shift / capacity, 4),
            ))

    logger.info(
        "Shift utilization computed",
        shifts=len(metrics),
        max_utilization=max((m.utilization for m in metrics), default=0.0),
    )
    return ShiftReport(assignments, metrics)
