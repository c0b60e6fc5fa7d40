"""
Store operations: consumption and inventory, staffing, shift utilization
"""
from .inventory import (
    INGREDIENTS,
    BillOfMaterialsCatalog,
    IngredientLedgerRow,
    InventoryState,
    simulate_consumption,
)
from .shifts import Shift, ShiftMetrics, ShiftReport, compute_shift_metrics
from .staffing import Role, StaffMember, StaffRoster, assign_staff

__all__ = [
    "INGREDIENTS",
    "BillOfMaterialsCatalog",
    "IngredientLedgerRow",
    "InventoryState",
    "simulate_consumption",
    "Shift",
    "ShiftMetrics",
    "ShiftReport",
    "compute_shift_metrics",
    "Role",
    "StaffMember",
    "StaffRoster",
    "assign_staff",
]
