"""
AdjustmentService -- manual stock corrections.

Responsibility:
    Applies a batch of signed on-hand corrections, each paired with an
    ADJUST_UP or ADJUST_DOWN movement.  Superuser only.

Architecture position:
    Kernel > Services.  Consumes InventoryRecordStore and MovementLedger.

Invariants enforced:
    - on_hand never goes negative: ``on_hand + delta < 0`` is rejected before
      the record is touched.
    - Price gate: unit price and currency may only be written on a genuine
      first stocking (total existence == 0 and delta > 0), and then only
      together (price > 0, three-letter currency).
    - The batch is one unit of work: the caller's transaction rolls back
      every line if any line fails.

Failure modes:
    - SuperuserRequiredError: actor lacks the superuser capability.
    - ValidationError: empty batch, zero or malformed delta, blank note,
      price without currency or vice versa.
    - LocationNotFoundError: explicit location missing, or no location at all.
    - InsufficientStockError: the correction would make on_hand negative.
    - InvalidPriceEditError: price/currency outside the first-stocking rule.

Audit relevance:
    The movement records |delta|, the actor, the note and the unit value and
    currency in force after the correction.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy.orm import Session

from inventory_kernel.db.types import ZERO, normalize_currency
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import AdjustmentRequest, AdjustmentResult
from inventory_kernel.domain.values import (
    Actor,
    optional_id,
    parse_positive_quantity,
    parse_quantity,
    require_id,
)
from inventory_kernel.exceptions import (
    InsufficientStockError,
    InvalidPriceEditError,
    ValidationError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory import InventoryRecord
from inventory_kernel.models.movement import MovementType
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_store import InventoryRecordStore
from inventory_kernel.services.movement_ledger import MovementLedger

logger = get_logger("services.adjustment")


class AdjustmentService(BaseService):
    """
    Applies manual stock corrections.

    Non-goals:
        - Does NOT touch the assignment pool or ``reserved``.
        - Does NOT commit; the caller owns the batch transaction.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._store = InventoryRecordStore(session, self._clock)
        self._ledger = MovementLedger(session, self._clock)

    def apply_adjustments(
        self,
        actor: Actor,
        requests: Sequence[AdjustmentRequest],
    ) -> list[AdjustmentResult]:
        """
        Apply every request in order.

        Raises on the first failing line; earlier lines have only been
        flushed, so the caller's rollback undoes them.
        """
        self._require_superuser(actor, "apply_adjustments")
        if not requests:
            raise ValidationError("At least one adjustment is required", field="requests")

        results = [self._apply_one(actor, request) for request in requests]

        logger.info(
            "adjustment_batch_applied",
            extra={"actor_id": actor.actor_id, "line_count": len(results)},
        )
        return results

    def _apply_one(self, actor: Actor, request: AdjustmentRequest) -> AdjustmentResult:
        material_id = require_id(request.material_id, "material_id")
        location_id = optional_id(request.location_id, "location_id")

        delta = parse_quantity(request.delta, "delta")
        if delta == ZERO:
            raise ValidationError("delta must not be zero", field="delta")

        note = (request.note or "").strip()
        if not note:
            raise ValidationError("note is required", field="note")

        location_id = self._store.resolve_location(location_id)
        record = self._store.ensure_exists(material_id, location_id)

        if record.on_hand + delta < ZERO:
            logger.warning(
                "adjustment_rejected_insufficient_stock",
                extra={
                    "material_id": material_id,
                    "location_id": location_id,
                    "on_hand": record.on_hand,
                    "delta": delta,
                },
            )
            raise InsufficientStockError(
                material_id, record.on_hand, -delta, location_id=location_id
            )

        price = self._check_price_edit(record, request, delta)

        record.on_hand = record.on_hand + delta
        if price is not None:
            record.last_unit_cost, record.currency = price
        self._store.touch(record)

        movement = self._ledger.append(
            material_id=material_id,
            movement_type=MovementType.ADJUST_UP if delta > ZERO else MovementType.ADJUST_DOWN,
            quantity=abs(delta),
            location_id=location_id,
            actor_id=actor.actor_id,
            unit_value=record.last_unit_cost,
            currency=record.currency,
            notes=note,
        )

        logger.info(
            "adjustment_applied",
            extra={
                "movement_id": movement.id,
                "material_id": material_id,
                "location_id": location_id,
                "delta": delta,
                "on_hand": record.on_hand,
                "price_set": price is not None,
            },
        )
        return AdjustmentResult(
            material_id=material_id,
            location_id=location_id,
            movement_id=movement.id,
            movement_type=movement.movement_type,
            quantity=movement.quantity,
            balance=self._store.snapshot(record),
        )

    def _check_price_edit(
        self,
        record: InventoryRecord,
        request: AdjustmentRequest,
        delta: Decimal,
    ) -> tuple[Decimal, str] | None:
        """
        Enforce the first-stocking price rule.

        Returns the (price, currency) pair to write, or None when the request
        carries neither.
        """
        has_price = request.unit_price is not None and str(request.unit_price).strip() != ""
        has_currency = request.currency is not None and request.currency.strip() != ""
        if not has_price and not has_currency:
            return None

        existence = self._store.total_existence(record)
        if not (existence == ZERO and delta > ZERO):
            logger.warning(
                "adjustment_rejected_price_edit",
                extra={
                    "material_id": record.material_id,
                    "location_id": record.location_id,
                    "total_existence": existence,
                    "delta": delta,
                },
            )
            raise InvalidPriceEditError(record.material_id, existence, delta)

        if not (has_price and has_currency):
            raise ValidationError(
                "unit_price and currency must be supplied together",
                field="unit_price" if not has_price else "currency",
            )

        price = parse_positive_quantity(request.unit_price, "unit_price")
        try:
            currency = normalize_currency(request.currency)
        except ValueError as exc:
            raise ValidationError(str(exc), field="currency") from exc
        return price, currency
