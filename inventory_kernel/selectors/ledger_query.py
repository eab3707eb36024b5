"""
Module: inventory_kernel.selectors.ledger_query
Responsibility: Filtered, paginated read access to the movement ledger
    (Kardex) for reporting.  Converts ORM rows to frozen MovementView DTOs.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Read-only, lock-free.
    - Voided movements are excluded unless include_voided is set.
    - Deterministic order: occurred_at DESC, id DESC.
    - limit is clamped to [1, max_page_size]; negative offsets become 0.

Failure modes:
    - MovementNotFoundError from get_movement() for an unknown id.  query()
      never raises on absence of data; it returns an empty page.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from inventory_config.schema import LedgerSettings
from inventory_kernel.domain.clock import as_utc
from inventory_kernel.domain.dtos import LedgerFilter, LedgerPage, MovementView
from inventory_kernel.exceptions import MovementNotFoundError
from inventory_kernel.models.movement import MovementRecord, MovementStatus
from inventory_kernel.selectors.base import BaseSelector


class LedgerQueryService(BaseSelector):
    """Ledger reporting queries."""

    def __init__(self, session: Session, settings: LedgerSettings | None = None):
        super().__init__(session)
        self._settings = settings or LedgerSettings()

    def query(
        self,
        filters: LedgerFilter,
        limit: int | None = None,
        offset: int = 0,
    ) -> LedgerPage:
        """
        One page of movements matching every given filter, newest first,
        with the total match count.
        """
        limit = self._clamp_limit(limit)
        offset = max(int(offset or 0), 0)

        conditions = self._conditions(filters)

        total = self.session.execute(
            select(func.count()).select_from(MovementRecord).where(*conditions)
        ).scalar_one()

        rows = self.session.execute(
            select(MovementRecord)
            .where(*conditions)
            .order_by(MovementRecord.occurred_at.desc(), MovementRecord.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars()

        return LedgerPage(
            total=total,
            limit=limit,
            offset=offset,
            rows=tuple(self._to_dto(m) for m in rows),
        )

    def get_movement(self, movement_id: int) -> MovementView:
        movement = self.session.execute(
            select(MovementRecord).where(MovementRecord.id == movement_id)
        ).scalar_one_or_none()
        if movement is None:
            raise MovementNotFoundError(movement_id)
        return self._to_dto(movement)

    def compensations_of(self, movement_id: int) -> list[MovementView]:
        """Compensating movements that reference the given movement."""
        rows = self.session.execute(
            select(MovementRecord)
            .where(MovementRecord.reverses_movement_id == movement_id)
            .order_by(MovementRecord.id.asc())
        ).scalars()
        return [self._to_dto(m) for m in rows]

    def _clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            return self._settings.default_page_size
        return min(max(int(limit), 1), self._settings.max_page_size)

    def _conditions(self, filters: LedgerFilter) -> list:
        conditions = []
        if not filters.include_voided:
            conditions.append(MovementRecord.status == MovementStatus.ACTIVE)
        if filters.material_id is not None:
            conditions.append(MovementRecord.material_id == filters.material_id)
        if filters.project_id is not None:
            conditions.append(
                or_(
                    MovementRecord.origin_project_id == filters.project_id,
                    MovementRecord.destination_project_id == filters.project_id,
                )
            )
        if filters.location_id is not None:
            conditions.append(MovementRecord.location_id == filters.location_id)
        if filters.movement_type is not None:
            conditions.append(MovementRecord.movement_type == filters.movement_type)
        if filters.purchase_order_id is not None:
            conditions.append(MovementRecord.purchase_order_id == filters.purchase_order_id)
        if filters.requisition_id is not None:
            conditions.append(MovementRecord.requisition_id == filters.requisition_id)
        if filters.actor_id is not None:
            conditions.append(MovementRecord.actor_id == filters.actor_id)

        zone = ZoneInfo(self._settings.reference_timezone)
        if filters.date_from is not None:
            start = datetime.combine(filters.date_from, time.min, tzinfo=zone)
            conditions.append(MovementRecord.occurred_at >= start.astimezone(timezone.utc))
        if filters.date_to is not None:
            end = datetime.combine(filters.date_to + timedelta(days=1), time.min, tzinfo=zone)
            conditions.append(MovementRecord.occurred_at < end.astimezone(timezone.utc))

        search = (filters.search or "").strip()
        if search:
            escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            conditions.append(MovementRecord.notes.ilike(f"%{escaped}%", escape="\\"))
        return conditions

    def _to_dto(self, movement: MovementRecord) -> MovementView:
        """Convert ORM model to DTO."""
        return MovementView(
            id=movement.id,
            material_id=movement.material_id,
            movement_type=movement.movement_type,
            quantity=movement.quantity,
            location_id=movement.location_id,
            origin_project_id=movement.origin_project_id,
            origin_site_id=movement.origin_site_id,
            destination_project_id=movement.destination_project_id,
            destination_site_id=movement.destination_site_id,
            purchase_order_id=movement.purchase_order_id,
            requisition_id=movement.requisition_id,
            source_assignment_id=movement.source_assignment_id,
            unit_value=movement.unit_value,
            currency=movement.currency,
            notes=movement.notes,
            actor_id=movement.actor_id,
            occurred_at=as_utc(movement.occurred_at),
            status=movement.status,
            voided_at=as_utc(movement.voided_at) if movement.voided_at is not None else None,
            voided_by=movement.voided_by,
            void_reason=movement.void_reason,
            reverses_movement_id=movement.reverses_movement_id,
        )
