"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The calling layer (HTTP handlers, batch jobs) has to decide whether a failure
is the caller's to fix or ours. That decision must never depend on the wording
of a message:

    try:
        operations.reverse(actor, movement_id, reason)
    except InventoryKernelError as e:
        if "mismo día" in str(e):            # WRONG - breaks on any rewording
            ...

    try:
        operations.reverse(actor, movement_id, reason)
    except InventoryKernelError as e:        # RIGHT - typed discriminant
        status = STATUS_BY_CATEGORY[e.category]
        body = {"error": e.code, "message": str(e)}

Every exception has:
  1. A CODE class attribute (machine-readable, API-safe)
  2. A CATEGORY class attribute (validation / authorization / not_found / internal)
  3. Structured attributes carrying the data needed to self-correct

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- ValidationError
    |   +-- InsufficientStockError
    |   +-- InsufficientReservationError
    |   +-- InvalidPriceEditError
    |
    +-- ReversalError
    |   +-- ReversalWindowExpiredError
    |   +-- UnsupportedReversalTypeError
    |   +-- MovementNotActiveError
    |   +-- CompensatingMovementError
    |   +-- UnresolvableDestinationError
    |
    +-- AuthorizationError
    |   +-- SuperuserRequiredError
    |
    +-- NotFoundError
    |   +-- LocationNotFoundError
    |   +-- MovementNotFoundError
    |   +-- AssignmentNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |
    +-- InternalError
        +-- StorageError
        +-- CentralWarehouseNotConfiguredError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                             | When Raised
--------------|----------------------------------|-------------------------------------
validation    | VALIDATION_ERROR                 | Bad input shape / missing field
              | INSUFFICIENT_STOCK               | Would drive on_hand negative
              | INSUFFICIENT_RESERVATION         | Would drive reserved / pool negative
              | INVALID_PRICE_EDIT               | Price edit outside first stocking
              | REVERSAL_WINDOW_EXPIRED          | Movement not from today
              | UNSUPPORTED_REVERSAL_TYPE        | No inverse defined for the type
              | MOVEMENT_NOT_ACTIVE              | Movement already void
              | COMPENSATING_MOVEMENT            | Movement is itself a reversal
              | UNRESOLVABLE_DESTINATION         | Site could not be resolved
--------------|----------------------------------|-------------------------------------
authorization | SUPERUSER_REQUIRED               | Actor lacks superuser capability
--------------|----------------------------------|-------------------------------------
not_found     | LOCATION_NOT_FOUND               | Location id does not exist
              | MOVEMENT_NOT_FOUND               | Movement id does not exist
              | ASSIGNMENT_NOT_FOUND             | Assignment id does not exist
              | PURCHASE_ORDER_NOT_FOUND         | Purchase order id does not exist
--------------|----------------------------------|-------------------------------------
internal      | STORAGE_ERROR                    | Transaction / connectivity failure
              | CENTRAL_WAREHOUSE_NOT_CONFIGURED | System parameter missing
              | IMMUTABILITY_VIOLATION           | Write to a frozen ledger field

The calling layer maps validation to 4xx (400/409), authorization to 403,
not_found to 404 and internal to 5xx.
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """Discriminant used by the calling layer to classify a failure."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must define `code`; `category` is inherited from the
    family base.
    """

    code: str = "INVENTORY_KERNEL_ERROR"
    category: ErrorCategory = ErrorCategory.INTERNAL

    @property
    def is_caller_fixable(self) -> bool:
        return self.category is not ErrorCategory.INTERNAL


# Validation exceptions


class ValidationError(InventoryKernelError):
    """Malformed or missing input, or a business-rule violation."""

    code: str = "VALIDATION_ERROR"
    category: ErrorCategory = ErrorCategory.VALIDATION

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InsufficientStockError(ValidationError):
    """Operation would leave on-hand stock negative."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, material_id: int, available, requested, location_id: int | None = None):
        self.material_id = material_id
        self.location_id = location_id
        self.available = available
        self.requested = requested
        where = f" at location {location_id}" if location_id is not None else ""
        super().__init__(
            f"Insufficient stock for material {material_id}{where}. "
            f"available: {available}, requested: {requested}"
        )


class InsufficientReservationError(ValidationError):
    """Operation would leave reserved quantity or a pool row negative."""

    code: str = "INSUFFICIENT_RESERVATION"

    def __init__(self, available, requested, detail: str = ""):
        self.available = available
        self.requested = requested
        self.detail = detail
        suffix = f" ({detail})" if detail else ""
        super().__init__(
            f"Insufficient reserved quantity{suffix}. "
            f"available: {available}, requested: {requested}"
        )


class InvalidPriceEditError(ValidationError):
    """Price/currency supplied outside the first-stocking condition."""

    code: str = "INVALID_PRICE_EDIT"

    def __init__(self, material_id: int, total_existence, delta):
        self.material_id = material_id
        self.total_existence = total_existence
        self.delta = delta
        super().__init__(
            "Unit price/currency may only be set when on_hand + reserved = 0 "
            f"and the adjustment is positive (existence: {total_existence}, "
            f"delta: {delta})"
        )


# Reversal exceptions


class ReversalError(InventoryKernelError):
    """Base exception for reversal-related errors."""

    code: str = "REVERSAL_ERROR"
    category: ErrorCategory = ErrorCategory.VALIDATION


class ReversalWindowExpiredError(ReversalError):
    """Movement is not from the current calendar day in the reference zone."""

    code: str = "REVERSAL_WINDOW_EXPIRED"

    def __init__(self, movement_id: int, movement_day, today, timezone: str):
        self.movement_id = movement_id
        self.movement_day = movement_day
        self.today = today
        self.timezone = timezone
        super().__init__(
            f"Movement {movement_id} can only be reversed on its own day "
            f"({movement_day}, {timezone}); today is {today}"
        )


class UnsupportedReversalTypeError(ReversalError):
    """Movement type has no defined inverse."""

    code: str = "UNSUPPORTED_REVERSAL_TYPE"

    def __init__(self, movement_id: int, movement_type: str):
        self.movement_id = movement_id
        self.movement_type = movement_type
        super().__init__(
            f"Movement type not supported for reversal: {movement_type} "
            f"(movement {movement_id})"
        )


class MovementNotActiveError(ReversalError):
    """Movement has already been voided."""

    code: str = "MOVEMENT_NOT_ACTIVE"

    def __init__(self, movement_id: int, status: str):
        self.movement_id = movement_id
        self.status = status
        super().__init__(f"Movement {movement_id} is not active (status: {status})")


class CompensatingMovementError(ReversalError):
    """Movement is itself a compensating entry and cannot be reversed."""

    code: str = "COMPENSATING_MOVEMENT"

    def __init__(self, movement_id: int, reverses_movement_id: int):
        self.movement_id = movement_id
        self.reverses_movement_id = reverses_movement_id
        super().__init__(
            f"Movement {movement_id} is the reversal of movement "
            f"{reverses_movement_id} and cannot itself be reversed"
        )


class UnresolvableDestinationError(ReversalError):
    """The site a reversal must restore to could not be resolved."""

    code: str = "UNRESOLVABLE_DESTINATION"

    def __init__(self, movement_id: int, detail: str):
        self.movement_id = movement_id
        self.detail = detail
        super().__init__(f"Cannot reverse movement {movement_id}: {detail}")


# Authorization exceptions


class AuthorizationError(InventoryKernelError):
    """Base exception for capability checks."""

    code: str = "AUTHORIZATION_ERROR"
    category: ErrorCategory = ErrorCategory.AUTHORIZATION


class SuperuserRequiredError(AuthorizationError):
    """Operation requires the superuser capability."""

    code: str = "SUPERUSER_REQUIRED"

    def __init__(self, actor_id: int, operation: str):
        self.actor_id = actor_id
        self.operation = operation
        super().__init__(f"Only a superuser may perform {operation} (actor {actor_id})")


# Not-found exceptions


class NotFoundError(InventoryKernelError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"
    category: ErrorCategory = ErrorCategory.NOT_FOUND

    entity: str = "Entity"

    def __init__(self, entity_id):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found: {entity_id}")


class LocationNotFoundError(NotFoundError):
    code: str = "LOCATION_NOT_FOUND"
    entity: str = "Location"


class MovementNotFoundError(NotFoundError):
    code: str = "MOVEMENT_NOT_FOUND"
    entity: str = "Movement"


class AssignmentNotFoundError(NotFoundError):
    code: str = "ASSIGNMENT_NOT_FOUND"
    entity: str = "Assignment"


class PurchaseOrderNotFoundError(NotFoundError):
    code: str = "PURCHASE_ORDER_NOT_FOUND"
    entity: str = "Purchase order"


# Internal exceptions


class InternalError(InventoryKernelError):
    """Not caller-fixable. Always logged server-side."""

    code: str = "INTERNAL_ERROR"
    category: ErrorCategory = ErrorCategory.INTERNAL


class StorageError(InternalError):
    """Underlying transaction or connectivity failure."""

    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Storage failure during {operation}")


class CentralWarehouseNotConfiguredError(InternalError):
    """The central-warehouse site system parameter is missing."""

    code: str = "CENTRAL_WAREHOUSE_NOT_CONFIGURED"

    def __init__(self, parameter_key: str):
        self.parameter_key = parameter_key
        super().__init__(f"System parameter '{parameter_key}' is not configured")


class ImmutabilityViolationError(InternalError):
    """Attempted to modify or delete a frozen ledger field."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}"
        )
