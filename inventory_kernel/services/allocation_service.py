"""
AllocationService -- earmarking stock and moving earmarks.

Responsibility:
    ``reserve`` moves on-hand stock into the assignment pool for a
    destination, largest location first.  ``relocate`` moves (part of) an
    existing assignment to another project and site.

Architecture position:
    Kernel > Services.  Consumes InventoryRecordStore, AssignmentPool and
    MovementLedger.

Invariants enforced:
    - Conservation: neither operation changes on_hand + reserved of any
      record.  reserve moves quantity from on_hand to reserved; relocate
      moves it between pool rows of the same record.
    - Greedy order: locations are drained on_hand DESC, id ASC, and the
      total is checked before any row is mutated.
    - Pool rows are driven to zero, never deleted.

Failure modes:
    - ValidationError: malformed ids or quantities.
    - InsufficientStockError: total on-hand below the requested quantity.
    - AssignmentNotFoundError: relocate of a missing assignment.
    - InsufficientReservationError: relocate of more than the assignment holds.

Audit relevance:
    One RESERVE movement per location touched; one TRANSFER per relocation
    carrying both origin and destination projects and sites.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from inventory_kernel.db.types import ZERO
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import RelocationResult, ReservationSlice
from inventory_kernel.domain.values import (
    Actor,
    Destination,
    optional_id,
    parse_positive_quantity,
    require_id,
)
from inventory_kernel.exceptions import (
    InsufficientReservationError,
    InsufficientStockError,
    ValidationError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.movement import MovementType
from inventory_kernel.services.assignment_pool import AssignmentPool
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_store import InventoryRecordStore
from inventory_kernel.services.movement_ledger import MovementLedger

logger = get_logger("services.allocation")


class AllocationService(BaseService):
    """Reserves on-hand stock and relocates reservations."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._store = InventoryRecordStore(session, self._clock)
        self._pool = AssignmentPool(session, self._clock)
        self._ledger = MovementLedger(session, self._clock)

    def reserve(
        self,
        actor: Actor,
        material_id: int,
        quantity: Any,
        site_id: int,
        project_id: int,
        requisition_id: int | None = None,
    ) -> list[ReservationSlice]:
        """
        Earmark ``quantity`` of a material for a destination.

        The quantity may be split across locations; the returned slices are
        in the order the locations were drained.
        """
        material_id = require_id(material_id, "material_id")
        destination = Destination(
            project_id=require_id(project_id, "project_id"),
            site_id=require_id(site_id, "site_id"),
            requisition_id=optional_id(requisition_id, "requisition_id"),
        )
        requested = parse_positive_quantity(quantity)

        records = self._store.lock_available(material_id)
        available = sum((r.on_hand for r in records), ZERO)
        if available < requested:
            logger.warning(
                "reserve_rejected_insufficient_stock",
                extra={
                    "material_id": material_id,
                    "available": available,
                    "requested": requested,
                },
            )
            raise InsufficientStockError(material_id, available, requested)

        slices: list[ReservationSlice] = []
        remaining = requested
        for record in records:
            if remaining <= ZERO:
                break
            taken = min(remaining, record.on_hand)

            record.on_hand = record.on_hand - taken
            record.reserved = record.reserved + taken
            self._store.touch(record)

            self._pool.upsert(
                record.id,
                destination,
                taken,
                record.last_unit_cost,
                record.currency,
            )

            movement = self._ledger.append(
                material_id=material_id,
                movement_type=MovementType.RESERVE,
                quantity=taken,
                location_id=record.location_id,
                actor_id=actor.actor_id,
                destination_project_id=destination.project_id,
                destination_site_id=destination.site_id,
                requisition_id=destination.requisition_id,
                unit_value=record.last_unit_cost,
                currency=record.currency,
                notes=_reserve_note(destination),
            )
            slices.append(
                ReservationSlice(
                    location_id=record.location_id,
                    quantity_taken=taken,
                    movement_id=movement.id,
                )
            )
            remaining -= taken

        logger.info(
            "stock_reserved",
            extra={
                "material_id": material_id,
                "quantity": requested,
                "project_id": destination.project_id,
                "site_id": destination.site_id,
                "requisition_id": destination.requisition_id,
                "location_count": len(slices),
            },
        )
        return slices

    def relocate(
        self,
        actor: Actor,
        assignment_id: int,
        new_site_id: int,
        new_project_id: int,
        quantity: Any = None,
    ) -> RelocationResult:
        """
        Move an assignment (or part of it) to a new project and site.

        ``quantity`` defaults to the assignment's full current quantity.
        Relocating to the same project and site is a no-op success.
        """
        assignment_id = require_id(assignment_id, "assignment_id")
        new_project_id = require_id(new_project_id, "new_project_id")
        new_site_id = require_id(new_site_id, "new_site_id")
        requested = None if quantity is None else parse_positive_quantity(quantity)

        assignment, record = self._pool.get_for_update(assignment_id)
        held = assignment.quantity
        moved: Decimal = held if requested is None else requested

        if moved > held:
            logger.warning(
                "relocate_rejected_insufficient_reservation",
                extra={"assignment_id": assignment_id, "held": held, "requested": moved},
            )
            raise InsufficientReservationError(
                held, moved, detail=f"assignment {assignment_id}"
            )

        origin = Destination(assignment.project_id, assignment.site_id, assignment.requisition_id)
        target = origin.with_place(new_project_id, new_site_id)

        if origin.same_place(target):
            logger.info(
                "assignment_relocate_noop",
                extra={"assignment_id": assignment_id},
            )
            return RelocationResult(
                assignment_id=assignment_id,
                moved_quantity=ZERO,
                changed=False,
            )

        if moved <= ZERO:
            raise ValidationError(
                f"Assignment {assignment_id} holds no quantity to relocate",
                field="quantity",
            )

        assignment.quantity = held - moved
        self.session.flush()

        target_row = self._pool.upsert(
            record.id,
            target,
            moved,
            assignment.unit_value,
            assignment.currency,
        )

        movement = self._ledger.append(
            material_id=record.material_id,
            movement_type=MovementType.TRANSFER,
            quantity=moved,
            location_id=record.location_id,
            actor_id=actor.actor_id,
            origin_project_id=origin.project_id,
            origin_site_id=origin.site_id,
            destination_project_id=target.project_id,
            destination_site_id=target.site_id,
            requisition_id=origin.requisition_id,
            unit_value=assignment.unit_value,
            currency=assignment.currency,
            notes=(
                f"TRANSFER of assignment {assignment_id}: "
                f"project {origin.project_id} site {origin.site_id} -> "
                f"project {target.project_id} site {target.site_id}"
            ),
        )

        logger.info(
            "assignment_relocated",
            extra={
                "assignment_id": assignment_id,
                "movement_id": movement.id,
                "quantity": moved,
                "origin_project_id": origin.project_id,
                "destination_project_id": target.project_id,
            },
        )
        return RelocationResult(
            assignment_id=assignment_id,
            moved_quantity=moved,
            changed=True,
            movement_id=movement.id,
            destination_assignment_id=target_row.id if target_row is not None else None,
        )


def _reserve_note(destination: Destination) -> str:
    note = f"RESERVE for project {destination.project_id} site {destination.site_id}"
    if destination.requisition_id is not None:
        note += f" requisition {destination.requisition_id}"
    return note
