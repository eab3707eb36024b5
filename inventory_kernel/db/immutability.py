"""
ORM-level immutability enforcement for the movement ledger.

Movements are the audit trail: once written they may not change, except
that the reversal engine voids an ACTIVE movement by setting its void fields
in the same flush.  Anything else is blocked before SQL reaches the database:

    session.flush()
         |
         v
    [before_update] --> _check_movement_immutability() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_movement_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Protected entities:

Entity          | Mutable fields                                | When
----------------|-----------------------------------------------|----------------------
MovementRecord  | status, voided_at, voided_by, void_reason     | ACTIVE -> VOID, once
MovementRecord  | (none)                                        | delete is never allowed

Usage:

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that need to corrupt a row on purpose call
unregister_immutability_listeners() and register again afterwards.
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

VOID_FIELDS = frozenset({"status", "voided_at", "voided_by", "void_reason"})


def _status_value(status) -> str:
    return status.value if hasattr(status, "value") else str(status)


def _check_movement_immutability(mapper, connection, target):
    """
    Allow exactly one transition: ACTIVE -> VOID with only void fields set.

    Logic:
        1. If status was VOID before this flush: block everything.
        2. If status is not changing: block any change (nothing else is
           mutable on an active movement either).
        3. If status is changing ACTIVE -> VOID: allow, provided every other
           changed attribute is a void field.
    """
    from inventory_kernel.models.movement import MovementStatus

    status_history = get_history(target, "status")

    if status_history.deleted:
        old_status = _status_value(status_history.deleted[0])
        new_status = _status_value(status_history.added[0]) if status_history.added else None
        transition_ok = (
            old_status == MovementStatus.ACTIVE.value
            and new_status == MovementStatus.VOID.value
        )
    else:
        transition_ok = False

    for attr in inspect(target).attrs:
        if not attr.history.has_changes():
            continue
        if transition_ok and attr.key in VOID_FIELDS:
            continue
        logger.error(
            "immutability_violation_blocked",
            extra={
                "entity_type": "MovementRecord",
                "entity_id": target.id,
                "operation": "UPDATE",
                "field": attr.key,
            },
        )
        raise ImmutabilityViolationError(
            entity_type="MovementRecord",
            entity_id=target.id,
            reason=f"Cannot modify field '{attr.key}' on a recorded movement",
        )


def _check_movement_delete(mapper, connection, target):
    """Movements are never deleted; reversals void and compensate instead."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "MovementRecord",
            "entity_id": target.id,
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="MovementRecord",
        entity_id=target.id,
        reason="Movements cannot be deleted",
    )


def register_immutability_listeners():
    """
    Register the movement immutability listeners (idempotent).

    Call after the models are importable and before any flush.
    """
    from inventory_kernel.models.movement import MovementRecord

    if not event.contains(MovementRecord, "before_update", _check_movement_immutability):
        event.listen(MovementRecord, "before_update", _check_movement_immutability)
    if not event.contains(MovementRecord, "before_delete", _check_movement_delete):
        event.listen(MovementRecord, "before_delete", _check_movement_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if it was never registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the movement immutability listeners.

    WARNING: Only use this in tests that intentionally violate immutability.
    """
    from inventory_kernel.models.movement import MovementRecord

    _safe_remove_listener(MovementRecord, "before_update", _check_movement_immutability)
    _safe_remove_listener(MovementRecord, "before_delete", _check_movement_delete)
