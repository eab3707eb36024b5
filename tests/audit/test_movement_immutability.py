"""
Append-only movement ledger tests.

Verifies:
- A recorded movement cannot be edited
- A recorded movement cannot be deleted
- Only the ACTIVE -> VOID transition with void fields is accepted, once
- Listeners can be removed and registered again
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from inventory_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.models.movement import MovementStatus
from tests.conftest import MATERIAL_ID


@contextmanager
def disabled_immutability():
    """Disable ORM immutability enforcement to simulate tampering."""
    unregister_immutability_listeners()
    try:
        yield
    finally:
        register_immutability_listeners()


@pytest.fixture
def movement(stock, reference_data, movements):
    stock(MATERIAL_ID, reference_data.main_location_id, "5")
    return movements(MATERIAL_ID)[0]


class TestMovementUpdates:
    @pytest.mark.parametrize(
        "field, value",
        [
            ("quantity", Decimal("50")),
            ("notes", "edited"),
            ("location_id", 2),
            ("actor_id", 99),
        ],
    )
    def test_field_edit_blocked(self, session, movement, field, value):
        setattr(movement, field, value)
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert field in exc_info.value.reason

    def test_void_transition_allowed(self, session, movement):
        movement.status = MovementStatus.VOID
        movement.voided_at = datetime(2024, 6, 3, 19, 0, tzinfo=timezone.utc)
        movement.voided_by = 1
        movement.void_reason = "count error"
        session.flush()
        assert movement.status == MovementStatus.VOID

    def test_void_with_other_changes_blocked(self, session, movement):
        movement.status = MovementStatus.VOID
        movement.quantity = Decimal("1")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_void_fields_without_transition_blocked(self, session, movement):
        movement.void_reason = "sneaky"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_voided_movement_is_frozen(self, session, movement):
        movement.status = MovementStatus.VOID
        movement.void_reason = "count error"
        session.flush()

        movement.status = MovementStatus.ACTIVE
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_violation_is_logged(self, session, movement, captured_logs):
        movement.notes = "edited"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        assert any(r["message"] == "immutability_violation_blocked" for r in captured_logs())


class TestMovementDeletes:
    def test_delete_blocked(self, session, movement):
        session.delete(movement)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestListenerRegistration:
    def test_disabled_listeners_allow_tampering(self, session, movement):
        with disabled_immutability():
            movement.notes = "tampered"
            session.flush()
        assert movement.notes == "tampered"

    def test_registration_is_idempotent(self, session, movement):
        register_immutability_listeners()
        register_immutability_listeners()
        movement.notes = "edited"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
