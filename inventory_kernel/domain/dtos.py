"""
DTOs -- Request and result objects at the kernel boundary.

Responsibility:
    Immutable data carriers for operation inputs (AdjustmentRequest,
    LedgerFilter) and outputs (balances, reservation slices, reversal
    results, ledger pages).  No ORM objects cross the kernel boundary.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from inventory_kernel.models.movement import MovementStatus, MovementType


@dataclass(frozen=True)
class AdjustmentRequest:
    """
    One line of a manual stock correction.

    ``delta`` and ``unit_price`` are taken as given (Decimal, int or numeric
    string) and parsed by the adjustment service.
    """

    material_id: int
    delta: Any
    note: str
    location_id: int | None = None
    unit_price: Any = None
    currency: str | None = None


@dataclass(frozen=True)
class InventoryBalance:
    """Balances of one InventoryRecord after an operation."""

    material_id: int
    location_id: int
    on_hand: Decimal
    reserved: Decimal
    last_unit_cost: Decimal
    currency: str | None

    @property
    def total_existence(self) -> Decimal:
        return self.on_hand + self.reserved


@dataclass(frozen=True)
class AdjustmentResult:
    material_id: int
    location_id: int
    movement_id: int
    movement_type: MovementType
    quantity: Decimal
    balance: InventoryBalance


@dataclass(frozen=True)
class ReservationSlice:
    """Quantity reserved from one location by a reserve call."""

    location_id: int
    quantity_taken: Decimal
    movement_id: int


@dataclass(frozen=True)
class RelocationResult:
    """
    Outcome of moving (part of) an assignment to a new destination.

    ``changed`` is False for the same-destination no-op, in which case no
    movement is written and ``movement_id`` is None.
    """

    assignment_id: int
    moved_quantity: Decimal
    changed: bool
    movement_id: int | None = None
    destination_assignment_id: int | None = None


@dataclass(frozen=True)
class ReversalResult:
    original_movement_id: int
    compensating_movement_id: int
    movement_type: MovementType
    voided_at: datetime


@dataclass(frozen=True)
class ReceiptResult:
    """
    Outcome of receiving purchased material.

    ``landed_in_stock`` is True when the receipt went to on-hand stock (central
    warehouse) and False when it went straight into a project reservation.
    """

    movement_id: int
    location_id: int
    quantity: Decimal
    landed_in_stock: bool
    assignment_id: int | None
    balance: InventoryBalance


@dataclass(frozen=True)
class IssueSlice:
    """Quantity issued out of one location (or one assignment)."""

    location_id: int
    quantity_taken: Decimal
    movement_id: int
    source_assignment_id: int | None = None


@dataclass(frozen=True)
class MovementView:
    """Read-only projection of a MovementRecord."""

    id: int
    material_id: int
    movement_type: MovementType
    quantity: Decimal
    location_id: int
    origin_project_id: int | None
    origin_site_id: int | None
    destination_project_id: int | None
    destination_site_id: int | None
    purchase_order_id: int | None
    requisition_id: int | None
    source_assignment_id: int | None
    unit_value: Decimal
    currency: str | None
    notes: str | None
    actor_id: int
    occurred_at: datetime
    status: MovementStatus
    voided_at: datetime | None
    voided_by: int | None
    void_reason: str | None
    reverses_movement_id: int | None


@dataclass(frozen=True)
class LedgerFilter:
    """
    Filters for a ledger query.  Every filter is optional and they combine
    with AND.

    ``project_id`` matches either the origin or the destination project.
    ``date_from`` / ``date_to`` are inclusive calendar dates in the reference
    timezone.  ``search`` is a case-insensitive substring match on notes.
    """

    material_id: int | None = None
    project_id: int | None = None
    location_id: int | None = None
    movement_type: MovementType | None = None
    purchase_order_id: int | None = None
    requisition_id: int | None = None
    actor_id: int | None = None
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = None
    include_voided: bool = False


@dataclass(frozen=True)
class LedgerPage:
    total: int
    limit: int
    offset: int
    rows: tuple[MovementView, ...] = field(default_factory=tuple)


class StockState(str, Enum):
    """Which part of the stock a material listing keeps."""

    ALL = "all"
    AVAILABLE = "available"
    RESERVED = "reserved"


@dataclass(frozen=True)
class MaterialStock:
    """One material's balances summed over every location."""

    material_id: int
    on_hand: Decimal
    reserved: Decimal

    @property
    def total_existence(self) -> Decimal:
        return self.on_hand + self.reserved


@dataclass(frozen=True)
class AssignmentView:
    """
    Read-only projection of a live AssignmentRecord.

    ``id`` is the assignment id that relocate and issue_from_assignment take.
    """

    id: int
    material_id: int
    location_id: int
    inventory_record_id: int
    project_id: int
    project_name: str
    site_id: int
    site_name: str
    requisition_id: int | None
    quantity: Decimal
    unit_value: Decimal
    currency: str | None
    assigned_at: datetime
