"""
AssignmentPool -- reservations of stock against destinations.

Responsibility:
    Upserts, locks and drains AssignmentRecord rows.  A pool row is keyed by
    (inventory record, project, site, requisition) with the requisition
    compared null-matches-null; rows are driven to zero, never deleted.

Architecture position:
    Kernel > Services.  Used by AllocationService, ReceiptService,
    IssueService and ReversalEngine.  Never touches InventoryRecord
    balances: callers keep ``reserved`` in step with the pool.

Invariants enforced:
    - Draining locks every matching row with quantity > 0 in the order
      quantity DESC, id ASC, and checks the total before mutating any row
      (all-or-nothing).
    - No row ever goes negative.

Failure modes:
    - InsufficientReservationError: matching rows hold less than requested.
    - AssignmentNotFoundError: get_for_update on a missing id.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.db.types import ZERO
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.values import Destination
from inventory_kernel.exceptions import AssignmentNotFoundError, InsufficientReservationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory import AssignmentRecord, InventoryRecord
from inventory_kernel.services.base import BaseService

logger = get_logger("services.assignment_pool")


@dataclass(frozen=True)
class PoolSlice:
    """Quantity taken from one pool row by a drain."""

    assignment: AssignmentRecord
    quantity_taken: Decimal


def _requisition_clause(requisition_id: int | None):
    if requisition_id is None:
        return AssignmentRecord.requisition_id.is_(None)
    return AssignmentRecord.requisition_id == requisition_id


class AssignmentPool(BaseService):
    """Locked upsert and greedy drain of AssignmentRecord rows."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def get_for_update(self, assignment_id: int) -> tuple[AssignmentRecord, InventoryRecord]:
        """
        Lock an assignment together with its inventory record.

        Raises:
            AssignmentNotFoundError: No assignment with that id.
        """
        row = self.session.execute(
            select(AssignmentRecord, InventoryRecord)
            .join(InventoryRecord, AssignmentRecord.inventory_record_id == InventoryRecord.id)
            .where(AssignmentRecord.id == assignment_id)
            .with_for_update()
        ).one_or_none()
        if row is None:
            raise AssignmentNotFoundError(assignment_id)
        return row[0], row[1]

    def find_for_update(
        self, inventory_record_id: int, destination: Destination
    ) -> AssignmentRecord | None:
        """Lock the row for exactly this destination, if one exists."""
        return self.session.execute(
            select(AssignmentRecord)
            .where(
                AssignmentRecord.inventory_record_id == inventory_record_id,
                AssignmentRecord.project_id == destination.project_id,
                AssignmentRecord.site_id == destination.site_id,
                _requisition_clause(destination.requisition_id),
            )
            .order_by(AssignmentRecord.id.asc())
            .limit(1)
            .with_for_update()
        ).scalar_one_or_none()

    def upsert(
        self,
        inventory_record_id: int,
        destination: Destination,
        quantity: Decimal,
        unit_value: Decimal,
        currency: str | None,
    ) -> AssignmentRecord | None:
        """
        Add quantity at a destination.

        Increments the matching row and overwrites its unit value, currency
        and timestamp, or inserts a new row.  Returns None (and does nothing)
        when quantity <= 0.
        """
        if quantity <= ZERO:
            return None

        now = self._clock.now()
        row = self.find_for_update(inventory_record_id, destination)
        if row is None:
            row = AssignmentRecord(
                inventory_record_id=inventory_record_id,
                project_id=destination.project_id,
                site_id=destination.site_id,
                requisition_id=destination.requisition_id,
                quantity=quantity,
                unit_value=unit_value,
                currency=currency,
                assigned_at=now,
            )
            self.session.add(row)
        else:
            row.quantity = row.quantity + quantity
            row.unit_value = unit_value
            row.currency = currency
            row.assigned_at = now
        self.session.flush()

        logger.debug(
            "assignment_upserted",
            extra={
                "assignment_id": row.id,
                "inventory_record_id": inventory_record_id,
                "project_id": destination.project_id,
                "site_id": destination.site_id,
                "requisition_id": destination.requisition_id,
                "quantity": quantity,
            },
        )
        return row

    def lock_matching(
        self,
        inventory_record_id: int,
        project_id: int,
        site_id: int | None = None,
        requisition_id: int | None = None,
    ) -> list[AssignmentRecord]:
        """
        Lock every row with quantity > 0 for the project (and site, when
        given) whose requisition matches, largest first.
        """
        stmt = select(AssignmentRecord).where(
            AssignmentRecord.inventory_record_id == inventory_record_id,
            AssignmentRecord.project_id == project_id,
            AssignmentRecord.quantity > 0,
            _requisition_clause(requisition_id),
        )
        if site_id is not None:
            stmt = stmt.where(AssignmentRecord.site_id == site_id)
        stmt = stmt.order_by(AssignmentRecord.quantity.desc(), AssignmentRecord.id.asc())
        return list(self.session.execute(stmt.with_for_update()).scalars())

    def drain(
        self,
        inventory_record_id: int,
        project_id: int,
        quantity: Decimal,
        site_id: int | None = None,
        requisition_id: int | None = None,
    ) -> list[PoolSlice]:
        """
        Take ``quantity`` out of the matching rows, largest first.

        ``site_id=None`` matches any site.  The total is checked before any
        row is touched.

        Raises:
            InsufficientReservationError: Matching rows hold less than
                ``quantity``.
        """
        rows = self.lock_matching(inventory_record_id, project_id, site_id, requisition_id)
        available = sum((r.quantity for r in rows), ZERO)
        if available < quantity:
            logger.warning(
                "assignment_drain_rejected",
                extra={
                    "inventory_record_id": inventory_record_id,
                    "project_id": project_id,
                    "site_id": site_id,
                    "requisition_id": requisition_id,
                    "available": available,
                    "requested": quantity,
                },
            )
            raise InsufficientReservationError(
                available,
                quantity,
                detail=f"project {project_id}" + (f", site {site_id}" if site_id is not None else ""),
            )

        slices: list[PoolSlice] = []
        remaining = quantity
        for row in rows:
            if remaining <= ZERO:
                break
            taken = min(remaining, row.quantity)
            row.quantity = row.quantity - taken
            remaining -= taken
            slices.append(PoolSlice(assignment=row, quantity_taken=taken))
        self.session.flush()
        return slices

    def decrement(
        self,
        inventory_record_id: int,
        project_id: int,
        quantity: Decimal,
        site_id: int | None = None,
        requisition_id: int | None = None,
    ) -> None:
        """drain() without the per-row breakdown."""
        self.drain(inventory_record_id, project_id, quantity, site_id, requisition_id)
