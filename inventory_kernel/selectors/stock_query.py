"""
Module: inventory_kernel.selectors.stock_query
Responsibility: Read access to current stock: per-location balances,
    per-material totals, and the live reservation rows of a material.  The
    assignment rows carry the ids that relocate and issue_from_assignment
    take.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Read-only, lock-free.
    - Assignment listings only show rows with quantity > 0.
    - Deterministic order: balances by (material_id, location_id), totals by
      material_id, assignments by (project name, site name, id).

Failure modes:
    - None on absence of data; every query returns an empty list.
"""

from __future__ import annotations

from sqlalchemy import func, select

from inventory_kernel.domain.clock import as_utc
from inventory_kernel.domain.dtos import AssignmentView, InventoryBalance, MaterialStock, StockState
from inventory_kernel.models.inventory import AssignmentRecord, InventoryRecord
from inventory_kernel.models.reference import Project, Site
from inventory_kernel.selectors.base import BaseSelector


class StockQueryService(BaseSelector):
    """Current balances and reservations."""

    def balances(
        self,
        material_id: int | None = None,
        location_id: int | None = None,
    ) -> list[InventoryBalance]:
        """One balance per (material, location) record matching the filters."""
        stmt = select(InventoryRecord)
        if material_id is not None:
            stmt = stmt.where(InventoryRecord.material_id == material_id)
        if location_id is not None:
            stmt = stmt.where(InventoryRecord.location_id == location_id)
        rows = self.session.execute(
            stmt.order_by(InventoryRecord.material_id, InventoryRecord.location_id)
        ).scalars()
        return [self._balance_to_dto(r) for r in rows]

    def material_totals(
        self,
        state: StockState = StockState.ALL,
        project_id: int | None = None,
        site_id: int | None = None,
    ) -> list[MaterialStock]:
        """
        Balances summed over every location, one row per material.

        AVAILABLE keeps materials with on_hand > 0, RESERVED those with
        reserved > 0.  A project or site narrows ALL and RESERVED listings
        to materials holding a live reservation there; AVAILABLE ignores
        both, since unreserved stock belongs to no destination.
        """
        state = StockState(state)
        on_hand = func.sum(InventoryRecord.on_hand)
        reserved = func.sum(InventoryRecord.reserved)

        stmt = select(InventoryRecord.material_id, on_hand, reserved).group_by(
            InventoryRecord.material_id
        )

        if state is not StockState.AVAILABLE and (project_id is not None or site_id is not None):
            held = (
                select(InventoryRecord.material_id)
                .join(AssignmentRecord, AssignmentRecord.inventory_record_id == InventoryRecord.id)
                .where(AssignmentRecord.quantity > 0)
            )
            if project_id is not None:
                held = held.where(AssignmentRecord.project_id == project_id)
            if site_id is not None:
                held = held.where(AssignmentRecord.site_id == site_id)
            stmt = stmt.where(InventoryRecord.material_id.in_(held))

        if state is StockState.AVAILABLE:
            stmt = stmt.having(on_hand > 0)
        elif state is StockState.RESERVED:
            stmt = stmt.having(reserved > 0)

        rows = self.session.execute(stmt.order_by(InventoryRecord.material_id)).all()
        return [
            MaterialStock(material_id=material, on_hand=total_on_hand, reserved=total_reserved)
            for material, total_on_hand, total_reserved in rows
        ]

    def assignments_for_material(self, material_id: int) -> list[AssignmentView]:
        """Live reservation rows of a material across every location."""
        rows = self.session.execute(
            select(AssignmentRecord, InventoryRecord, Project.name, Site.name)
            .join(InventoryRecord, AssignmentRecord.inventory_record_id == InventoryRecord.id)
            .join(Project, Project.id == AssignmentRecord.project_id)
            .join(Site, Site.id == AssignmentRecord.site_id)
            .where(
                InventoryRecord.material_id == material_id,
                AssignmentRecord.quantity > 0,
            )
            .order_by(Project.name.asc(), Site.name.asc(), AssignmentRecord.id.asc())
        ).all()
        return [
            self._assignment_to_dto(assignment, record, project_name, site_name)
            for assignment, record, project_name, site_name in rows
        ]

    @staticmethod
    def _balance_to_dto(record: InventoryRecord) -> InventoryBalance:
        return InventoryBalance(
            material_id=record.material_id,
            location_id=record.location_id,
            on_hand=record.on_hand,
            reserved=record.reserved,
            last_unit_cost=record.last_unit_cost,
            currency=record.currency,
        )

    @staticmethod
    def _assignment_to_dto(
        assignment: AssignmentRecord,
        record: InventoryRecord,
        project_name: str,
        site_name: str,
    ) -> AssignmentView:
        return AssignmentView(
            id=assignment.id,
            material_id=record.material_id,
            location_id=record.location_id,
            inventory_record_id=record.id,
            project_id=assignment.project_id,
            project_name=project_name,
            site_id=assignment.site_id,
            site_name=site_name,
            requisition_id=assignment.requisition_id,
            quantity=assignment.quantity,
            unit_value=assignment.unit_value,
            currency=assignment.currency,
            assigned_at=as_utc(assignment.assigned_at),
        )
