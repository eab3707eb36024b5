"""
Module: inventory_kernel.models.movement
Responsibility: ORM persistence for the Kardex: one MovementRecord per
    quantity-affecting event, plus the closed MovementType and MovementStatus
    enums.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - quantity > 0 (CHECK constraint); direction is implied by type and the
      origin/destination fields.
    - A movement is immutable once written except for its void fields, and
      status goes ACTIVE -> VOID at most once (ORM listeners in
      db/immutability.py).
    - reverses_movement_id links a compensating entry to the movement it
      undoes.

Failure modes:
    - ImmutabilityViolationError on any other update or on delete.

Audit relevance:
    The movement table is the single source of truth for "what happened".
    Reversals never delete: they void the original and append a compensating
    entry, so the full history stays visible.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, IdentityKey
from inventory_kernel.db.types import CurrencyColumn, QuantityColumn, VOID_REASON_LENGTH, ZERO


class MovementType(str, Enum):
    """Kind of quantity-affecting event."""

    ADJUST_UP = "adjust_up"
    ADJUST_DOWN = "adjust_down"
    RESERVE = "reserve"
    TRANSFER = "transfer"
    RECEIVE = "receive"
    ISSUE = "issue"


class MovementStatus(str, Enum):
    """Lifecycle status of a movement."""

    ACTIVE = "active"
    VOID = "void"


class MovementRecord(Base):
    """
    One Kardex entry.

    Contract:
        Written exactly once by the operation that caused it.  Only the
        reversal engine updates it afterwards, and only to set the void
        fields together.
    """

    __tablename__ = "inventory_movements"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movement_quantity_positive"),
        Index("idx_movement_material", "material_id"),
        Index("idx_movement_occurred", "occurred_at", "id"),
        Index("idx_movement_origin_project", "origin_project_id"),
        Index("idx_movement_destination_project", "destination_project_id"),
        Index("idx_movement_reverses", "reverses_movement_id"),
    )

    material_id: Mapped[int] = mapped_column(IdentityKey, nullable=False)

    movement_type: Mapped[MovementType] = mapped_column(
        SQLEnum(MovementType, name="movement_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(QuantityColumn, nullable=False)

    location_id: Mapped[int] = mapped_column(
        IdentityKey,
        ForeignKey("warehouse_locations.id"),
        nullable=False,
    )

    origin_project_id: Mapped[int | None] = mapped_column(IdentityKey, nullable=True)
    origin_site_id: Mapped[int | None] = mapped_column(IdentityKey, nullable=True)
    destination_project_id: Mapped[int | None] = mapped_column(IdentityKey, nullable=True)
    destination_site_id: Mapped[int | None] = mapped_column(IdentityKey, nullable=True)

    purchase_order_id: Mapped[int | None] = mapped_column(IdentityKey, nullable=True)
    requisition_id: Mapped[int | None] = mapped_column(IdentityKey, nullable=True)

    # Pool row an ISSUE drew from
    source_assignment_id: Mapped[int | None] = mapped_column(IdentityKey, nullable=True)

    unit_value: Mapped[Decimal] = mapped_column(QuantityColumn, nullable=False, default=ZERO)
    currency: Mapped[str | None] = mapped_column(CurrencyColumn, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    actor_id: Mapped[int] = mapped_column(IdentityKey, nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[MovementStatus] = mapped_column(
        SQLEnum(MovementStatus, name="movement_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MovementStatus.ACTIVE,
    )

    # Void fields
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    voided_by: Mapped[int | None] = mapped_column(IdentityKey, nullable=True)
    void_reason: Mapped[str | None] = mapped_column(String(VOID_REASON_LENGTH), nullable=True)

    reverses_movement_id: Mapped[int | None] = mapped_column(
        IdentityKey,
        ForeignKey("inventory_movements.id"),
        nullable=True,
    )

    @property
    def is_active(self) -> bool:
        return self.status == MovementStatus.ACTIVE

    @property
    def is_compensating(self) -> bool:
        return self.reverses_movement_id is not None

    def __repr__(self) -> str:
        return (
            f"<MovementRecord id={self.id} type={self.movement_type.value} "
            f"qty={self.quantity} status={self.status.value}>"
        )
