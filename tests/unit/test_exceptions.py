"""
Exception hierarchy tests.

Verifies:
- Every kernel error carries a machine-readable code and a category
- Structured attributes are populated for callers to self-correct
- Internal errors are the only ones not fixable by the caller
"""

from datetime import date
from decimal import Decimal

import pytest

from inventory_kernel.exceptions import (
    AssignmentNotFoundError,
    AuthorizationError,
    CentralWarehouseNotConfiguredError,
    CompensatingMovementError,
    ErrorCategory,
    ImmutabilityViolationError,
    InsufficientReservationError,
    InsufficientStockError,
    InternalError,
    InvalidPriceEditError,
    InventoryKernelError,
    LocationNotFoundError,
    MovementNotActiveError,
    MovementNotFoundError,
    NotFoundError,
    PurchaseOrderNotFoundError,
    ReversalError,
    ReversalWindowExpiredError,
    StorageError,
    SuperuserRequiredError,
    UnresolvableDestinationError,
    UnsupportedReversalTypeError,
    ValidationError,
)


ALL_ERRORS = [
    ValidationError("bad", field="x"),
    InsufficientStockError(1, Decimal("2"), Decimal("3")),
    InsufficientReservationError(Decimal("1"), Decimal("2")),
    InvalidPriceEditError(1, Decimal("5"), Decimal("1")),
    ReversalWindowExpiredError(1, date(2024, 6, 2), date(2024, 6, 3), "America/Mexico_City"),
    UnsupportedReversalTypeError(1, "mystery"),
    MovementNotActiveError(1, "void"),
    CompensatingMovementError(2, 1),
    UnresolvableDestinationError(1, "no site"),
    SuperuserRequiredError(7, "reverse_movement"),
    LocationNotFoundError(1),
    MovementNotFoundError(1),
    AssignmentNotFoundError(1),
    PurchaseOrderNotFoundError(1),
    StorageError("reserve"),
    CentralWarehouseNotConfiguredError("central_warehouse_site_id"),
    ImmutabilityViolationError("MovementRecord", 1, "nope"),
]


class TestHierarchy:
    @pytest.mark.parametrize("error", ALL_ERRORS, ids=lambda e: type(e).__name__)
    def test_every_error_has_code_and_category(self, error):
        assert isinstance(error, InventoryKernelError)
        assert error.code and error.code != InventoryKernelError.code
        assert isinstance(error.category, ErrorCategory)
        assert str(error)

    def test_codes_are_unique(self):
        codes = [type(e).code for e in ALL_ERRORS]
        assert len(codes) == len(set(codes))

    def test_families(self):
        assert issubclass(InsufficientStockError, ValidationError)
        assert issubclass(InsufficientReservationError, ValidationError)
        assert issubclass(InvalidPriceEditError, ValidationError)
        assert issubclass(ReversalWindowExpiredError, ReversalError)
        assert issubclass(SuperuserRequiredError, AuthorizationError)
        assert issubclass(MovementNotFoundError, NotFoundError)
        assert issubclass(StorageError, InternalError)

    def test_only_internal_errors_are_not_caller_fixable(self):
        for error in ALL_ERRORS:
            expected = not isinstance(error, InternalError)
            assert error.is_caller_fixable is expected, type(error).__name__


class TestStructuredAttributes:
    def test_insufficient_stock(self):
        error = InsufficientStockError(101, Decimal("5"), Decimal("6"), location_id=2)
        assert error.material_id == 101
        assert error.available == Decimal("5")
        assert error.requested == Decimal("6")
        assert error.location_id == 2
        assert "available: 5" in str(error)
        assert "requested: 6" in str(error)

    def test_window_expired(self):
        error = ReversalWindowExpiredError(
            9, date(2024, 6, 2), date(2024, 6, 3), "America/Mexico_City"
        )
        assert error.movement_id == 9
        assert error.movement_day == date(2024, 6, 2)
        assert error.today == date(2024, 6, 3)
        assert error.timezone == "America/Mexico_City"

    def test_not_found_message_names_entity(self):
        assert str(MovementNotFoundError(42)) == "Movement not found: 42"
        assert str(PurchaseOrderNotFoundError(3)) == "Purchase order not found: 3"

    def test_validation_field(self):
        assert ValidationError("bad delta", field="delta").field == "delta"
