"""
InventoryRecordStore -- locked access to (material, location) balances.

Responsibility:
    Owns reads-for-update and lazy creation of InventoryRecord rows, and
    location resolution.  Every value a guard checks is read by the same
    ``SELECT ... FOR UPDATE`` that locks the row.

Architecture position:
    Kernel > Services.  Used by every writer; never commits.

Invariants enforced:
    - Locks over several records are taken in a deterministic order
      (on_hand DESC, id ASC) so concurrent callers acquire them in the same
      sequence.
    - A record is created zeroed at most once per (material, location); a
      concurrent insert that loses the race re-reads the winner's row.

Failure modes:
    - LocationNotFoundError: explicit location does not exist, or no
      location exists at all when a default is needed.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from inventory_kernel.db.types import ZERO
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import InventoryBalance
from inventory_kernel.exceptions import LocationNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory import InventoryRecord
from inventory_kernel.models.reference import Location
from inventory_kernel.services.base import BaseService

logger = get_logger("services.inventory_store")


class InventoryRecordStore(BaseService):
    """Locked reads and lazy creation of InventoryRecord rows."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def get_for_update(self, material_id: int, location_id: int) -> InventoryRecord | None:
        """Lock and return the record for (material, location), or None."""
        return self.session.execute(
            select(InventoryRecord)
            .where(
                InventoryRecord.material_id == material_id,
                InventoryRecord.location_id == location_id,
            )
            .with_for_update()
        ).scalar_one_or_none()

    def ensure_exists(self, material_id: int, location_id: int) -> InventoryRecord:
        """
        Return the locked record, inserting a zeroed one if absent.

        The insert is ``ON CONFLICT DO NOTHING`` on (material, location): if
        a concurrent transaction created the row first, the insert is a
        no-op and the winner's row is locked instead.
        """
        record = self.get_for_update(material_id, location_id)
        if record is not None:
            return record

        insert = _dialect_insert(self.session)
        self.session.execute(
            insert(InventoryRecord)
            .values(
                material_id=material_id,
                location_id=location_id,
                on_hand=ZERO,
                reserved=ZERO,
                last_unit_cost=ZERO,
                currency=None,
                updated_at=self._clock.now(),
            )
            .on_conflict_do_nothing(index_elements=["material_id", "location_id"])
        )

        record = self.get_for_update(material_id, location_id)
        logger.info(
            "inventory_record_ensured",
            extra={
                "material_id": material_id,
                "location_id": location_id,
                "inventory_record_id": record.id,
            },
        )
        return record

    def lock_available(self, material_id: int) -> list[InventoryRecord]:
        """Lock every record of the material with on_hand > 0, largest first."""
        return list(
            self.session.execute(
                select(InventoryRecord)
                .where(
                    InventoryRecord.material_id == material_id,
                    InventoryRecord.on_hand > 0,
                )
                .order_by(InventoryRecord.on_hand.desc(), InventoryRecord.id.asc())
                .with_for_update()
            ).scalars()
        )

    @staticmethod
    def total_existence(record: InventoryRecord) -> Decimal:
        return record.on_hand + record.reserved

    def touch(self, record: InventoryRecord) -> None:
        record.updated_at = self._clock.now()

    def resolve_location(self, location_id: int | None) -> int:
        """
        Validate an explicit location, or default to the lowest-id location.

        Raises:
            LocationNotFoundError: The location does not exist, or no
                location exists when defaulting.
        """
        if location_id is not None:
            found = self.session.execute(
                select(Location.id).where(Location.id == location_id)
            ).scalar_one_or_none()
            if found is None:
                raise LocationNotFoundError(location_id)
            return found

        lowest = self.session.execute(select(func.min(Location.id))).scalar_one_or_none()
        if lowest is None:
            raise LocationNotFoundError("default")
        return lowest

    @staticmethod
    def snapshot(record: InventoryRecord) -> InventoryBalance:
        return InventoryBalance(
            material_id=record.material_id,
            location_id=record.location_id,
            on_hand=record.on_hand,
            reserved=record.reserved,
            last_unit_cost=record.last_unit_cost,
            currency=record.currency,
        )


def _dialect_insert(session: Session):
    """INSERT construct supporting on_conflict_do_nothing for the bound dialect."""
    if session.get_bind().dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert
