"""
InventoryOperations -- the kernel's public, transactional surface.

Responsibility:
    Runs each public operation in exactly one unit of work: opens a session
    from the injected factory, builds the services for that session, commits
    on success and rolls back on any error (db.engine.session_scope).

Architecture position:
    Kernel > Services -- outermost kernel seam.  HTTP handlers and other
    callers use this class; they never build services or sessions
    themselves.

Invariants enforced:
    - One transaction per call.  A batch of adjustments fails as a whole.
    - No shared mutable state: the facade holds only the session factory,
      clock and settings.

Failure modes:
    - Kernel errors propagate unchanged after rollback.
    - SQLAlchemy errors surface as StorageError.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from inventory_config.schema import LedgerSettings
from inventory_kernel.db.engine import session_scope
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import (
    AdjustmentRequest,
    AdjustmentResult,
    AssignmentView,
    InventoryBalance,
    IssueSlice,
    LedgerFilter,
    LedgerPage,
    MaterialStock,
    MovementView,
    ReceiptResult,
    RelocationResult,
    ReservationSlice,
    ReversalResult,
    StockState,
)
from inventory_kernel.domain.values import Actor
from inventory_kernel.logging_config import LogContext
from inventory_kernel.selectors.ledger_query import LedgerQueryService
from inventory_kernel.selectors.stock_query import StockQueryService
from inventory_kernel.services.adjustment_service import AdjustmentService
from inventory_kernel.services.allocation_service import AllocationService
from inventory_kernel.services.issue_service import IssueService
from inventory_kernel.services.parameter_service import ParameterService
from inventory_kernel.services.receipt_service import ReceiptService
from inventory_kernel.services.reversal_engine import ReversalEngine


class InventoryOperations:
    """
    Transactional facade over the inventory kernel.

    Usage:
        ops = InventoryOperations(make_session_factory(engine), SystemClock(),
                                  get_active_settings())
        ops.reserve(actor, material_id=7, quantity="6", site_id=1, project_id=3)
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        settings: LedgerSettings | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._settings = settings or LedgerSettings()

    @contextmanager
    def _scope(
        self, operation: str, actor: Actor | None = None, **context: Any
    ) -> Iterator[Session]:
        """One unit of work with the operation and actor bound into LogContext."""
        with LogContext.bind(
            correlation_id=uuid4(),
            operation=operation,
            actor_id=actor.actor_id if actor is not None else None,
            **context,
        ):
            with session_scope(self._session_factory, operation) as session:
                yield session

    def apply_adjustments(
        self, actor: Actor, requests: Sequence[AdjustmentRequest]
    ) -> list[AdjustmentResult]:
        with self._scope("apply_adjustments", actor) as session:
            return AdjustmentService(session, self._clock).apply_adjustments(actor, requests)

    def reserve(
        self,
        actor: Actor,
        material_id: int,
        quantity: Any,
        site_id: int,
        project_id: int,
        requisition_id: int | None = None,
    ) -> list[ReservationSlice]:
        with self._scope("reserve", actor, material_id=material_id) as session:
            return AllocationService(session, self._clock).reserve(
                actor, material_id, quantity, site_id, project_id, requisition_id
            )

    def relocate(
        self,
        actor: Actor,
        assignment_id: int,
        new_site_id: int,
        new_project_id: int,
        quantity: Any = None,
    ) -> RelocationResult:
        with self._scope("relocate", actor) as session:
            return AllocationService(session, self._clock).relocate(
                actor, assignment_id, new_site_id, new_project_id, quantity
            )

    def reverse(self, actor: Actor, movement_id: int, reason: str) -> ReversalResult:
        with self._scope("reverse", actor, movement_id=movement_id) as session:
            return ReversalEngine(session, self._clock, self._settings).reverse(
                actor, movement_id, reason
            )

    def receive(
        self,
        actor: Actor,
        purchase_order_id: int,
        material_id: int,
        quantity: Any,
        unit_price: Any,
        currency: str,
        location_id: int | None = None,
        requisition_id: int | None = None,
    ) -> ReceiptResult:
        with self._scope("receive", actor, material_id=material_id) as session:
            return ReceiptService(session, self._clock, self._settings).receive(
                actor,
                purchase_order_id,
                material_id,
                quantity,
                unit_price,
                currency,
                location_id=location_id,
                requisition_id=requisition_id,
            )

    def issue_from_stock(
        self,
        actor: Actor,
        material_id: int,
        quantity: Any,
        destination_project_id: int,
        destination_site_id: int | None = None,
    ) -> list[IssueSlice]:
        with self._scope("issue_from_stock", actor, material_id=material_id) as session:
            return IssueService(session, self._clock).issue_from_stock(
                actor, material_id, quantity, destination_project_id, destination_site_id
            )

    def issue_from_assignment(
        self, actor: Actor, assignment_id: int, quantity: Any
    ) -> IssueSlice:
        with self._scope("issue_from_assignment", actor) as session:
            return IssueService(session, self._clock).issue_from_assignment(
                actor, assignment_id, quantity
            )

    def set_parameter(self, key: str, value: str | None) -> None:
        with self._scope("set_parameter") as session:
            ParameterService(session, self._settings).set(key, value)

    def query_ledger(
        self,
        filters: LedgerFilter | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> LedgerPage:
        with self._scope("query_ledger") as session:
            return LedgerQueryService(session, self._settings).query(
                filters or LedgerFilter(), limit=limit, offset=offset
            )

    def get_movement(self, movement_id: int) -> MovementView:
        with self._scope("get_movement", movement_id=movement_id) as session:
            return LedgerQueryService(session, self._settings).get_movement(movement_id)


    def list_balances(
        self, material_id: int | None = None, location_id: int | None = None
    ) -> list[InventoryBalance]:
        with self._scope("list_balances", material_id=material_id) as session:
            return StockQueryService(session).balances(material_id, location_id)

    def list_material_totals(
        self,
        state: StockState = StockState.ALL,
        project_id: int | None = None,
        site_id: int | None = None,
    ) -> list[MaterialStock]:
        with self._scope("list_material_totals") as session:
            return StockQueryService(session).material_totals(state, project_id, site_id)

    def list_assignments(self, material_id: int) -> list[AssignmentView]:
        with self._scope("list_assignments", material_id=material_id) as session:
            return StockQueryService(session).assignments_for_material(material_id)
