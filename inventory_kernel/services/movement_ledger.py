"""
MovementLedger -- append-only writer for the Kardex.

Responsibility:
    Appends MovementRecord rows for every quantity-affecting event, locks a
    movement for reversal, and voids it.

Architecture position:
    Kernel > Services.  The only writer of inventory_movements.

Invariants enforced:
    - quantity > 0 on every appended movement (also a CHECK constraint).
    - occurred_at comes from the injected clock.
    - Voiding sets status, voided_at, voided_by and void_reason together;
      the immutability listeners reject any other change.

Audit relevance:
    Every balance change in the kernel is paired with exactly one append in
    the same transaction.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.db.types import ZERO
from inventory_kernel.domain.clock import Clock
from inventory_kernel.exceptions import MovementNotFoundError, ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.movement import MovementRecord, MovementStatus, MovementType
from inventory_kernel.services.base import BaseService

logger = get_logger("services.movement_ledger")


class MovementLedger(BaseService):
    """Appends, locks and voids movements."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def append(
        self,
        *,
        material_id: int,
        movement_type: MovementType,
        quantity: Decimal,
        location_id: int,
        actor_id: int,
        origin_project_id: int | None = None,
        origin_site_id: int | None = None,
        destination_project_id: int | None = None,
        destination_site_id: int | None = None,
        purchase_order_id: int | None = None,
        requisition_id: int | None = None,
        source_assignment_id: int | None = None,
        unit_value: Decimal | None = None,
        currency: str | None = None,
        notes: str | None = None,
        reverses_movement_id: int | None = None,
    ) -> MovementRecord:
        if quantity <= ZERO:
            raise ValidationError(
                f"Movement quantity must be positive, got {quantity}", field="quantity"
            )

        movement = MovementRecord(
            material_id=material_id,
            movement_type=movement_type,
            quantity=quantity,
            location_id=location_id,
            origin_project_id=origin_project_id,
            origin_site_id=origin_site_id,
            destination_project_id=destination_project_id,
            destination_site_id=destination_site_id,
            purchase_order_id=purchase_order_id,
            requisition_id=requisition_id,
            source_assignment_id=source_assignment_id,
            unit_value=unit_value if unit_value is not None else ZERO,
            currency=currency,
            notes=notes,
            actor_id=actor_id,
            occurred_at=self._clock.now(),
            status=MovementStatus.ACTIVE,
            reverses_movement_id=reverses_movement_id,
        )
        self.session.add(movement)
        self.session.flush()

        logger.info(
            "movement_recorded",
            extra={
                "movement_id": movement.id,
                "movement_type": movement_type.value,
                "material_id": material_id,
                "location_id": location_id,
                "quantity": quantity,
                "reverses_movement_id": reverses_movement_id,
            },
        )
        return movement

    def get_for_update(self, movement_id: int) -> MovementRecord:
        """
        Lock a movement for reversal.

        Raises:
            MovementNotFoundError: No movement with that id.
        """
        movement = self.session.execute(
            select(MovementRecord)
            .where(MovementRecord.id == movement_id)
            .with_for_update()
        ).scalar_one_or_none()
        if movement is None:
            raise MovementNotFoundError(movement_id)
        return movement

    def void(self, movement: MovementRecord, actor_id: int, reason: str) -> datetime:
        """Mark an ACTIVE movement VOID.  Returns the void timestamp."""
        voided_at = self._clock.now()
        movement.status = MovementStatus.VOID
        movement.voided_at = voided_at
        movement.voided_by = actor_id
        movement.void_reason = reason
        self.session.flush()

        logger.info(
            "movement_voided",
            extra={"movement_id": movement.id, "voided_by": actor_id},
        )
        return voided_at
