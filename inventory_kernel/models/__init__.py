"""ORM models for the inventory kernel."""

from inventory_kernel.models.inventory import AssignmentRecord, InventoryRecord
from inventory_kernel.models.movement import MovementRecord, MovementStatus, MovementType
from inventory_kernel.models.reference import (
    Location,
    Project,
    PurchaseOrder,
    Site,
    SystemParameter,
)

__all__ = [
    "AssignmentRecord",
    "InventoryRecord",
    "Location",
    "MovementRecord",
    "MovementStatus",
    "MovementType",
    "Project",
    "PurchaseOrder",
    "Site",
    "SystemParameter",
]
