"""
ReversalEngine -- undo a past movement with a compensating entry.

Responsibility:
    Given an ACTIVE movement from today, applies the exact inverse of its
    effect on InventoryRecord balances and the assignment pool, appends one
    compensating movement that references it, and voids it.

Architecture position:
    Kernel > Services -- imperative shell.  Consumes InventoryRecordStore,
    AssignmentPool, MovementLedger and ParameterService.

Invariants enforced:
    - Same-day window: a movement can only be reversed on its own calendar
      day in the reference timezone (LedgerSettings.reference_timezone).
    - Non-negativity: every branch checks the balance or pool it will
      decrement, using the locked value, before mutating anything.
    - A movement is voided at most once; compensating entries are not
      themselves reversible.
    - Typed dispatch: the handler table is keyed by MovementType; a type
      without a handler raises UnsupportedReversalTypeError.

Failure modes:
    - SuperuserRequiredError, ValidationError (short reason or bad id).
    - MovementNotFoundError, MovementNotActiveError, CompensatingMovementError.
    - ReversalWindowExpiredError.
    - InsufficientStockError / InsufficientReservationError from the guards.
    - UnresolvableDestinationError when a site cannot be resolved.
    - UnsupportedReversalTypeError.
    Any failure leaves the caller's transaction to roll back; the original
    movement stays ACTIVE and untouched.

Audit relevance:
    Original and compensating entries stay in the ledger.  The compensating
    entry copies purchase order, requisition, unit value and currency from
    the original and its notes read
    "REVERSAL of movement #<id>. Reason: <reason>. <detail>".

Compensating types:
    ADJUST_UP   -> ADJUST_DOWN
    ADJUST_DOWN -> ADJUST_UP
    RESERVE     -> TRANSFER  (origin = reserved project, no destination)
    TRANSFER    -> TRANSFER  (origin and destination swapped)
    RECEIVE     -> RECEIVE
    ISSUE       -> ISSUE
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_config.schema import LedgerSettings
from inventory_kernel.db.types import VOID_REASON_LENGTH
from inventory_kernel.domain.clock import Clock, as_utc
from inventory_kernel.domain.dtos import ReversalResult
from inventory_kernel.domain.values import Actor, Destination, require_id
from inventory_kernel.exceptions import (
    CompensatingMovementError,
    InsufficientReservationError,
    InsufficientStockError,
    MovementNotActiveError,
    ReversalWindowExpiredError,
    UnresolvableDestinationError,
    UnsupportedReversalTypeError,
    ValidationError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory import AssignmentRecord, InventoryRecord
from inventory_kernel.models.movement import MovementRecord, MovementStatus, MovementType
from inventory_kernel.models.reference import Project, PurchaseOrder
from inventory_kernel.services.assignment_pool import AssignmentPool
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_store import InventoryRecordStore
from inventory_kernel.services.movement_ledger import MovementLedger
from inventory_kernel.services.parameter_service import ParameterService

logger = get_logger("services.reversal")


@dataclass(frozen=True)
class Compensation:
    """What a handler wants written as the compensating movement."""

    movement_type: MovementType
    detail: str
    origin_project_id: int | None = None
    origin_site_id: int | None = None
    destination_project_id: int | None = None
    destination_site_id: int | None = None
    source_assignment_id: int | None = None


Handler = Callable[[MovementRecord, InventoryRecord], Compensation]


class ReversalEngine(BaseService):
    """
    Reverses movements.

    Non-goals:
        - Does NOT commit; the caller owns the transaction.
        - Does NOT reverse compensating entries or partial quantities.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: LedgerSettings | None = None,
    ):
        super().__init__(session, clock)
        self._settings = settings or LedgerSettings()
        self._store = InventoryRecordStore(session, self._clock)
        self._pool = AssignmentPool(session, self._clock)
        self._ledger = MovementLedger(session, self._clock)
        self._parameters = ParameterService(session, self._settings)
        self._handlers: dict[MovementType, Handler] = {
            MovementType.ADJUST_UP: self._reverse_adjust_up,
            MovementType.ADJUST_DOWN: self._reverse_adjust_down,
            MovementType.RESERVE: self._reverse_reserve,
            MovementType.TRANSFER: self._reverse_transfer,
            MovementType.RECEIVE: self._reverse_receive,
            MovementType.ISSUE: self._reverse_issue,
        }

    def reverse(self, actor: Actor, movement_id: Any, reason: str) -> ReversalResult:
        """
        Reverse one movement.

        Preconditions:
            - actor is a superuser.
            - reason, stripped, has between min_reversal_reason_length and
              max_reversal_reason_length chars.

        Postconditions:
            - Balances and pool rows are back to their pre-movement values
              for the quantity involved.
            - The original is VOID; exactly one new ACTIVE movement has
              reverses_movement_id pointing at it.
        """
        self._require_superuser(actor, "reverse_movement")

        reason_text = (reason or "").strip()
        if len(reason_text) < self._settings.min_reversal_reason_length:
            raise ValidationError(
                "A reversal reason of at least "
                f"{self._settings.min_reversal_reason_length} characters is required",
                field="reason",
            )
        max_length = min(self._settings.max_reversal_reason_length, VOID_REASON_LENGTH)
        if len(reason_text) > max_length:
            raise ValidationError(
                f"A reversal reason must be at most {max_length} characters, "
                f"got {len(reason_text)}",
                field="reason",
            )
        movement_id = require_id(movement_id, "movement_id")

        movement = self._ledger.get_for_update(movement_id)
        self._validate_reversible(movement)

        record = self._store.ensure_exists(movement.material_id, movement.location_id)

        handler = self._handlers.get(movement.movement_type)
        if handler is None:
            raise UnsupportedReversalTypeError(movement.id, str(movement.movement_type))
        compensation = handler(movement, record)
        self._store.touch(record)

        compensating = self._ledger.append(
            material_id=movement.material_id,
            movement_type=compensation.movement_type,
            quantity=movement.quantity,
            location_id=movement.location_id,
            actor_id=actor.actor_id,
            origin_project_id=compensation.origin_project_id,
            origin_site_id=compensation.origin_site_id,
            destination_project_id=compensation.destination_project_id,
            destination_site_id=compensation.destination_site_id,
            purchase_order_id=movement.purchase_order_id,
            requisition_id=movement.requisition_id,
            source_assignment_id=compensation.source_assignment_id,
            unit_value=movement.unit_value,
            currency=movement.currency,
            notes=(
                f"REVERSAL of movement #{movement.id}. Reason: {reason_text}. "
                f"{compensation.detail}"
            ).strip(),
            reverses_movement_id=movement.id,
        )

        voided_at = self._ledger.void(movement, actor.actor_id, reason_text)

        logger.info(
            "movement_reversed",
            extra={
                "movement_id": movement.id,
                "movement_type": movement.movement_type.value,
                "compensating_movement_id": compensating.id,
                "compensating_type": compensation.movement_type.value,
                "quantity": movement.quantity,
                "reason": reason_text,
            },
        )
        return ReversalResult(
            original_movement_id=movement.id,
            compensating_movement_id=compensating.id,
            movement_type=movement.movement_type,
            voided_at=voided_at,
        )

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _validate_reversible(self, movement: MovementRecord) -> None:
        if movement.status != MovementStatus.ACTIVE:
            raise MovementNotActiveError(movement.id, movement.status.value)

        if movement.reverses_movement_id is not None:
            raise CompensatingMovementError(movement.id, movement.reverses_movement_id)

        tz_name = self._settings.reference_timezone
        movement_day = as_utc(movement.occurred_at).astimezone(ZoneInfo(tz_name)).date()
        today = self._clock.today_in(tz_name)
        if movement_day != today:
            logger.warning(
                "reversal_rejected_window",
                extra={
                    "movement_id": movement.id,
                    "movement_day": movement_day,
                    "today": today,
                },
            )
            raise ReversalWindowExpiredError(movement.id, movement_day, today, tz_name)

        if movement.quantity <= 0:
            raise ValidationError(
                f"Movement {movement.id} has a non-positive quantity", field="quantity"
            )

    @staticmethod
    def _require_on_hand(record: InventoryRecord, movement: MovementRecord) -> None:
        if record.on_hand < movement.quantity:
            raise InsufficientStockError(
                movement.material_id,
                record.on_hand,
                movement.quantity,
                location_id=movement.location_id,
            )

    @staticmethod
    def _require_reserved(record: InventoryRecord, movement: MovementRecord) -> None:
        if record.reserved < movement.quantity:
            raise InsufficientReservationError(
                record.reserved,
                movement.quantity,
                detail=f"inventory record {record.id}",
            )

    # ------------------------------------------------------------------
    # Handlers, one per movement type
    # ------------------------------------------------------------------

    def _reverse_adjust_up(self, movement: MovementRecord, record: InventoryRecord) -> Compensation:
        self._require_on_hand(record, movement)
        record.on_hand = record.on_hand - movement.quantity
        return Compensation(
            movement_type=MovementType.ADJUST_DOWN,
            destination_project_id=movement.destination_project_id,
            detail="Compensates ADJUST_UP.",
        )

    def _reverse_adjust_down(self, movement: MovementRecord, record: InventoryRecord) -> Compensation:
        record.on_hand = record.on_hand + movement.quantity
        return Compensation(
            movement_type=MovementType.ADJUST_UP,
            destination_project_id=movement.destination_project_id,
            detail="Compensates ADJUST_DOWN.",
        )

    def _reverse_reserve(self, movement: MovementRecord, record: InventoryRecord) -> Compensation:
        self._require_reserved(record, movement)
        project_id = movement.destination_project_id
        if project_id is None:
            raise UnresolvableDestinationError(
                movement.id, "RESERVE movement has no destination project"
            )

        # Rows written without a site fall back to any site of the project
        self._pool.decrement(
            record.id,
            project_id,
            movement.quantity,
            site_id=movement.destination_site_id,
            requisition_id=movement.requisition_id,
        )
        record.reserved = record.reserved - movement.quantity
        record.on_hand = record.on_hand + movement.quantity
        return Compensation(
            movement_type=MovementType.TRANSFER,
            origin_project_id=project_id,
            origin_site_id=movement.destination_site_id,
            detail="Returns reserved quantity to stock.",
        )

    def _reverse_transfer(self, movement: MovementRecord, record: InventoryRecord) -> Compensation:
        origin_project = movement.origin_project_id
        destination_project = movement.destination_project_id
        if origin_project is None or destination_project is None:
            raise UnresolvableDestinationError(
                movement.id, "TRANSFER movement needs both origin and destination projects"
            )

        slices = self._pool.drain(
            record.id,
            destination_project,
            movement.quantity,
            site_id=movement.destination_site_id,
            requisition_id=movement.requisition_id,
        )
        for piece in slices:
            row = piece.assignment
            back_to = Destination(
                project_id=origin_project,
                site_id=movement.origin_site_id if movement.origin_site_id is not None else row.site_id,
                requisition_id=row.requisition_id,
            )
            self._pool.upsert(record.id, back_to, piece.quantity_taken, row.unit_value, row.currency)

        return Compensation(
            movement_type=MovementType.TRANSFER,
            origin_project_id=destination_project,
            origin_site_id=movement.destination_site_id,
            destination_project_id=origin_project,
            destination_site_id=movement.origin_site_id,
            detail="Moves the transferred quantity back to its origin.",
        )

    def _reverse_receive(self, movement: MovementRecord, record: InventoryRecord) -> Compensation:
        order_site_id = None
        landed_in_stock = True
        if movement.purchase_order_id is not None:
            order_site_id = self.session.execute(
                select(PurchaseOrder.site_id).where(PurchaseOrder.id == movement.purchase_order_id)
            ).scalar_one_or_none()
            central_site_id = self._parameters.central_warehouse_site_id()
            if central_site_id is not None and order_site_id is not None:
                landed_in_stock = order_site_id == central_site_id

        if landed_in_stock:
            self._require_on_hand(record, movement)
            record.on_hand = record.on_hand - movement.quantity
            return Compensation(
                movement_type=MovementType.RECEIVE,
                destination_project_id=movement.destination_project_id,
                detail="Removes the received quantity from stock.",
            )

        project_id = movement.destination_project_id
        if project_id is None:
            raise UnresolvableDestinationError(
                movement.id, "reserved RECEIVE movement has no destination project"
            )
        site_id = movement.destination_site_id or order_site_id or self._project_site(project_id)
        if site_id is None:
            raise UnresolvableDestinationError(
                movement.id, f"no site for project {project_id}"
            )

        self._require_reserved(record, movement)
        self._pool.decrement(
            record.id,
            project_id,
            movement.quantity,
            site_id=site_id,
            requisition_id=movement.requisition_id,
        )
        record.reserved = record.reserved - movement.quantity
        return Compensation(
            movement_type=MovementType.RECEIVE,
            destination_project_id=project_id,
            destination_site_id=site_id,
            detail=f"Removes the received quantity from the reservation at site {site_id}.",
        )

    def _reverse_issue(self, movement: MovementRecord, record: InventoryRecord) -> Compensation:
        origin_project = movement.origin_project_id
        if origin_project is None:
            record.on_hand = record.on_hand + movement.quantity
            return Compensation(
                movement_type=MovementType.ISSUE,
                destination_project_id=movement.destination_project_id,
                destination_site_id=movement.destination_site_id,
                detail="Returns the issued quantity to stock.",
            )

        site_id = movement.origin_site_id or self._project_site(origin_project)
        if site_id is None:
            raise UnresolvableDestinationError(
                movement.id, f"no site for origin project {origin_project}"
            )

        record.reserved = record.reserved + movement.quantity

        source = None
        if movement.source_assignment_id is not None:
            source = self.session.execute(
                select(AssignmentRecord)
                .where(AssignmentRecord.id == movement.source_assignment_id)
                .with_for_update()
            ).scalar_one_or_none()

        if source is not None:
            source.quantity = source.quantity + movement.quantity
            source.assigned_at = self._clock.now()
            self.session.flush()
        else:
            self._pool.upsert(
                record.id,
                Destination(origin_project, site_id, None),
                movement.quantity,
                movement.unit_value,
                movement.currency,
            )

        return Compensation(
            movement_type=MovementType.ISSUE,
            origin_project_id=origin_project,
            origin_site_id=site_id,
            destination_project_id=movement.destination_project_id,
            source_assignment_id=movement.source_assignment_id,
            detail=f"Returns the issued quantity to the reservation at site {site_id}.",
        )

    def _project_site(self, project_id: int) -> int | None:
        return self.session.execute(
            select(Project.site_id).where(Project.id == project_id)
        ).scalar_one_or_none()
