"""
Module: inventory_kernel.models.inventory
Responsibility: ORM persistence for stock balances (InventoryRecord) and the
    reservations earmarked against them (AssignmentRecord).
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - One InventoryRecord per (material_id, location_id) (UNIQUE constraint).
    - on_hand >= 0 and reserved >= 0 (CHECK constraints; services guard first
      and raise typed errors before any statement could trip these).
    - AssignmentRecord.quantity >= 0 (CHECK constraint).  Rows are driven to
      zero, never deleted, so reversals can restore into the exact row.

Failure modes:
    - IntegrityError on a duplicate (material_id, location_id) or on a
      negative balance reaching the database.

Audit relevance:
    on_hand + reserved is the total physical existence at a location.  Only
    adjustments, receipts and issues change it; reservations and transfers
    only move quantity between on_hand, reserved and pool rows.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import Base, IdentityKey
from inventory_kernel.db.types import CurrencyColumn, QuantityColumn, ZERO


class InventoryRecord(Base):
    """
    Authoritative balance of one material at one location.

    Contract:
        Created lazily with zero balances the first time an operation needs
        it; never deleted.  last_unit_cost/currency snapshot the most recent
        valid entry price.
    """

    __tablename__ = "inventory_records"

    __table_args__ = (
        UniqueConstraint("material_id", "location_id", name="uq_inventory_material_location"),
        CheckConstraint("on_hand >= 0", name="ck_inventory_on_hand_non_negative"),
        CheckConstraint("reserved >= 0", name="ck_inventory_reserved_non_negative"),
        Index("idx_inventory_material", "material_id"),
    )

    material_id: Mapped[int] = mapped_column(IdentityKey, nullable=False)

    location_id: Mapped[int] = mapped_column(
        IdentityKey,
        ForeignKey("warehouse_locations.id"),
        nullable=False,
    )

    # Unreserved quantity physically present
    on_hand: Mapped[Decimal] = mapped_column(QuantityColumn, nullable=False, default=ZERO)

    # Quantity earmarked to destinations, still physically here
    reserved: Mapped[Decimal] = mapped_column(QuantityColumn, nullable=False, default=ZERO)

    last_unit_cost: Mapped[Decimal] = mapped_column(QuantityColumn, nullable=False, default=ZERO)

    currency: Mapped[str | None] = mapped_column(CurrencyColumn, nullable=True)

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    assignments: Mapped[list["AssignmentRecord"]] = relationship(
        back_populates="inventory_record",
        lazy="select",
        order_by="AssignmentRecord.id",
    )

    @property
    def total_existence(self) -> Decimal:
        return self.on_hand + self.reserved

    def __repr__(self) -> str:
        return (
            f"<InventoryRecord material={self.material_id} location={self.location_id} "
            f"on_hand={self.on_hand} reserved={self.reserved}>"
        )


class AssignmentRecord(Base):
    """
    A reservation of stock against a (project, site, requisition) destination.

    Contract:
        Logically unique per (inventory_record_id, project_id, site_id,
        requisition_id) with requisition_id compared null-matches-null.  The
        sum of quantity over one InventoryRecord never exceeds its reserved.
    """

    __tablename__ = "inventory_assignments"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_assignment_quantity_non_negative"),
        Index(
            "idx_assignment_destination",
            "inventory_record_id",
            "project_id",
            "site_id",
            "requisition_id",
        ),
    )

    inventory_record_id: Mapped[int] = mapped_column(
        IdentityKey,
        ForeignKey("inventory_records.id"),
        nullable=False,
    )

    project_id: Mapped[int] = mapped_column(IdentityKey, nullable=False)

    site_id: Mapped[int] = mapped_column(IdentityKey, nullable=False)

    requisition_id: Mapped[int | None] = mapped_column(IdentityKey, nullable=True)

    quantity: Mapped[Decimal] = mapped_column(QuantityColumn, nullable=False, default=ZERO)

    unit_value: Mapped[Decimal] = mapped_column(QuantityColumn, nullable=False, default=ZERO)

    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    inventory_record: Mapped[InventoryRecord] = relationship(
        back_populates="assignments",
        lazy="select",
    )

    def __repr__(self) -> str:
        return (
            f"<AssignmentRecord id={self.id} project={self.project_id} "
            f"site={self.site_id} requisition={self.requisition_id} qty={self.quantity}>"
        )
