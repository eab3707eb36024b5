"""
IssueService -- material leaving the warehouse.

Responsibility:
    Issues material either out of unreserved stock (largest location first)
    or out of one specific reservation.

Architecture position:
    Kernel > Services.  Consumes InventoryRecordStore, AssignmentPool and
    MovementLedger.

Invariants enforced:
    - Stock issues follow the reserve order (on_hand DESC, id ASC) and check
      the total before mutating.
    - Reservation issues reduce the pool row and ``reserved`` together and
      never take either below zero.

Failure modes:
    - ValidationError: malformed input.
    - InsufficientStockError: on-hand total below the requested quantity.
    - AssignmentNotFoundError: unknown assignment.
    - InsufficientReservationError: the assignment or ``reserved`` is short.

Audit relevance:
    Stock issues record the destination project and no origin project;
    reservation issues record the origin project and site and the pool row
    they drew from (source_assignment_id) so a reversal can restore it.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from inventory_kernel.db.types import ZERO
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import IssueSlice
from inventory_kernel.domain.values import (
    Actor,
    optional_id,
    parse_positive_quantity,
    require_id,
)
from inventory_kernel.exceptions import InsufficientReservationError, InsufficientStockError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.movement import MovementType
from inventory_kernel.services.assignment_pool import AssignmentPool
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_store import InventoryRecordStore
from inventory_kernel.services.movement_ledger import MovementLedger

logger = get_logger("services.issue")


class IssueService(BaseService):
    """Issues stock out of the warehouse, from on-hand stock or from one assignment."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._store = InventoryRecordStore(session, self._clock)
        self._pool = AssignmentPool(session, self._clock)
        self._ledger = MovementLedger(session, self._clock)

    def issue_from_stock(
        self,
        actor: Actor,
        material_id: int,
        quantity: Any,
        destination_project_id: int,
        destination_site_id: int | None = None,
    ) -> list[IssueSlice]:
        """Issue unreserved stock to a project, largest location first."""
        material_id = require_id(material_id, "material_id")
        project_id = require_id(destination_project_id, "destination_project_id")
        site_id = optional_id(destination_site_id, "destination_site_id")
        requested = parse_positive_quantity(quantity)

        records = self._store.lock_available(material_id)
        available = sum((r.on_hand for r in records), ZERO)
        if available < requested:
            logger.warning(
                "issue_rejected_insufficient_stock",
                extra={"material_id": material_id, "available": available, "requested": requested},
            )
            raise InsufficientStockError(material_id, available, requested)

        slices: list[IssueSlice] = []
        remaining = requested
        for record in records:
            if remaining <= ZERO:
                break
            taken = min(remaining, record.on_hand)
            record.on_hand = record.on_hand - taken
            self._store.touch(record)

            movement = self._ledger.append(
                material_id=material_id,
                movement_type=MovementType.ISSUE,
                quantity=taken,
                location_id=record.location_id,
                actor_id=actor.actor_id,
                destination_project_id=project_id,
                destination_site_id=site_id,
                unit_value=record.last_unit_cost,
                currency=record.currency,
                notes=f"ISSUE from stock to project {project_id}",
            )
            slices.append(
                IssueSlice(
                    location_id=record.location_id,
                    quantity_taken=taken,
                    movement_id=movement.id,
                )
            )
            remaining -= taken

        logger.info(
            "stock_issued",
            extra={
                "material_id": material_id,
                "quantity": requested,
                "destination_project_id": project_id,
                "location_count": len(slices),
            },
        )
        return slices

    def issue_from_assignment(
        self,
        actor: Actor,
        assignment_id: int,
        quantity: Any,
    ) -> IssueSlice:
        """Issue material out of one reservation."""
        assignment_id = require_id(assignment_id, "assignment_id")
        requested = parse_positive_quantity(quantity)

        assignment, record = self._pool.get_for_update(assignment_id)
        if assignment.quantity < requested:
            logger.warning(
                "issue_rejected_insufficient_reservation",
                extra={
                    "assignment_id": assignment_id,
                    "held": assignment.quantity,
                    "requested": requested,
                },
            )
            raise InsufficientReservationError(
                assignment.quantity, requested, detail=f"assignment {assignment_id}"
            )
        if record.reserved < requested:
            raise InsufficientReservationError(
                record.reserved, requested, detail=f"inventory record {record.id}"
            )

        assignment.quantity = assignment.quantity - requested
        record.reserved = record.reserved - requested
        self._store.touch(record)

        movement = self._ledger.append(
            material_id=record.material_id,
            movement_type=MovementType.ISSUE,
            quantity=requested,
            location_id=record.location_id,
            actor_id=actor.actor_id,
            origin_project_id=assignment.project_id,
            origin_site_id=assignment.site_id,
            source_assignment_id=assignment.id,
            unit_value=record.last_unit_cost,
            currency=record.currency,
            notes=(
                f"ISSUE from assignment {assignment_id} "
                f"(project {assignment.project_id} site {assignment.site_id})"
            ),
        )

        logger.info(
            "assignment_issued",
            extra={
                "movement_id": movement.id,
                "assignment_id": assignment_id,
                "quantity": requested,
            },
        )
        return IssueSlice(
            location_id=record.location_id,
            quantity_taken=requested,
            movement_id=movement.id,
            source_assignment_id=assignment.id,
        )
