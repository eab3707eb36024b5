"""
ReceiptService -- receiving purchased material into inventory.

Responsibility:
    Books a purchase-order receipt at a location.  Receipts for the central
    warehouse site land in on-hand stock; receipts for any other site land
    directly in a reservation for the order's project and site.

Architecture position:
    Kernel > Services.  Consumes InventoryRecordStore, AssignmentPool,
    MovementLedger and ParameterService.

Invariants enforced:
    - The record's last unit cost and currency are overwritten by the
      receipt price (the "last entry price" rule).
    - reserved and the pool grow together on the reservation branch.

Failure modes:
    - ValidationError: malformed input, or a non-central order without a
      project or site.
    - PurchaseOrderNotFoundError: unknown purchase order.
    - CentralWarehouseNotConfiguredError: the central-warehouse parameter
      is missing.
    - LocationNotFoundError: explicit location missing, or none exists.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_config.schema import LedgerSettings
from inventory_kernel.db.types import normalize_currency
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import ReceiptResult
from inventory_kernel.domain.values import (
    Actor,
    Destination,
    optional_id,
    parse_positive_quantity,
    require_id,
)
from inventory_kernel.exceptions import (
    CentralWarehouseNotConfiguredError,
    PurchaseOrderNotFoundError,
    ValidationError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.movement import MovementType
from inventory_kernel.models.reference import PurchaseOrder
from inventory_kernel.services.assignment_pool import AssignmentPool
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_store import InventoryRecordStore
from inventory_kernel.services.movement_ledger import MovementLedger
from inventory_kernel.services.parameter_service import ParameterService

logger = get_logger("services.receipt")


class ReceiptService(BaseService):
    """
    Books purchase-order receipts.

    Central-warehouse orders land in on-hand stock; every other order lands
    reserved for the order's project and site.
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
        """Receive ``quantity`` of a material against a purchase order."""
        purchase_order_id = require_id(purchase_order_id, "purchase_order_id")
        material_id = require_id(material_id, "material_id")
        requisition_id = optional_id(requisition_id, "requisition_id")
        received = parse_positive_quantity(quantity)
        price = parse_positive_quantity(unit_price, "unit_price")
        try:
            currency = normalize_currency(currency)
        except ValueError as exc:
            raise ValidationError(str(exc), field="currency") from exc

        order = self.session.execute(
            select(PurchaseOrder).where(PurchaseOrder.id == purchase_order_id)
        ).scalar_one_or_none()
        if order is None:
            raise PurchaseOrderNotFoundError(purchase_order_id)

        central_site_id = self._parameters.central_warehouse_site_id()
        if central_site_id is None:
            raise CentralWarehouseNotConfiguredError(self._settings.central_warehouse_parameter)
        to_stock = order.site_id is not None and order.site_id == central_site_id

        location_id = self._store.resolve_location(optional_id(location_id, "location_id"))
        record = self._store.ensure_exists(material_id, location_id)

        assignment_id = None
        destination_site_id = None
        if to_stock:
            record.on_hand = record.on_hand + received
        else:
            if order.project_id is None or order.site_id is None:
                raise ValidationError(
                    f"Purchase order {purchase_order_id} has no project/site to reserve for",
                    field="purchase_order_id",
                )
            destination = Destination(order.project_id, order.site_id, requisition_id)
            record.reserved = record.reserved + received
            row = self._pool.upsert(record.id, destination, received, price, currency)
            assignment_id = row.id
            destination_site_id = order.site_id

        record.last_unit_cost = price
        record.currency = currency
        self._store.touch(record)

        movement = self._ledger.append(
            material_id=material_id,
            movement_type=MovementType.RECEIVE,
            quantity=received,
            location_id=location_id,
            actor_id=actor.actor_id,
            destination_project_id=order.project_id,
            destination_site_id=destination_site_id,
            purchase_order_id=purchase_order_id,
            requisition_id=None if to_stock else requisition_id,
            unit_value=price,
            currency=currency,
            notes=(
                f"RECEIVE for purchase order {order.number} "
                + ("(central warehouse stock)" if to_stock else f"(reserved for site {order.site_id})")
            ),
        )

        logger.info(
            "material_received",
            extra={
                "movement_id": movement.id,
                "purchase_order_id": purchase_order_id,
                "material_id": material_id,
                "location_id": location_id,
                "quantity": received,
                "landed_in_stock": to_stock,
            },
        )
        return ReceiptResult(
            movement_id=movement.id,
            location_id=location_id,
            quantity=received,
            landed_in_stock=to_stock,
            assignment_id=assignment_id,
            balance=self._store.snapshot(record),
        )
