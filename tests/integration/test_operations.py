"""
Tests for the InventoryOperations facade.

Verifies:
- Each operation commits as one unit of work
- A failing adjustment batch leaves nothing behind
- Kernel errors propagate unchanged; storage failures surface as StorageError
- Operation, actor and correlation id are bound into every log line
"""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from inventory_kernel.db.engine import session_scope
from inventory_kernel.domain.dtos import AdjustmentRequest, LedgerFilter, StockState
from inventory_kernel.exceptions import (
    InsufficientStockError,
    StorageError,
    SuperuserRequiredError,
)
from inventory_kernel.models.inventory import InventoryRecord
from inventory_kernel.models.movement import MovementRecord, MovementStatus, MovementType
from inventory_kernel.services.operations import InventoryOperations
from tests.conftest import CLERK, MATERIAL_ID, SUPERUSER, make_reference_data


@pytest.fixture
def refs(session_factory, settings):
    with session_scope(session_factory, "seed") as session:
        return make_reference_data(session, settings)


@pytest.fixture
def ops(session_factory, deterministic_clock, settings):
    return InventoryOperations(session_factory, deterministic_clock, settings)


def _count(session_factory, model) -> int:
    with session_scope(session_factory, "read") as session:
        return session.execute(select(func.count()).select_from(model)).scalar_one()


def _on_hand(session_factory, location_id) -> tuple[Decimal, Decimal]:
    with session_scope(session_factory, "read") as session:
        record = session.execute(
            select(InventoryRecord).where(
                InventoryRecord.material_id == MATERIAL_ID,
                InventoryRecord.location_id == location_id,
            )
        ).scalar_one()
        return record.on_hand, record.reserved


class TestUnitOfWork:
    def test_operations_commit(self, ops, refs, session_factory):
        ops.apply_adjustments(
            SUPERUSER, [AdjustmentRequest(material_id=MATERIAL_ID, delta="10", note="count")]
        )
        ops.reserve(SUPERUSER, MATERIAL_ID, "4", refs.field_site_id, refs.project_id)

        assert _on_hand(session_factory, refs.main_location_id) == (Decimal("6"), Decimal("4"))
        assert _count(session_factory, MovementRecord) == 2

    def test_failed_batch_rolls_back_every_line(self, ops, refs, session_factory):
        with pytest.raises(InsufficientStockError):
            ops.apply_adjustments(
                SUPERUSER,
                [
                    AdjustmentRequest(material_id=MATERIAL_ID, delta="5", note="first line"),
                    AdjustmentRequest(
                        material_id=MATERIAL_ID,
                        delta="-1",
                        note="second line",
                        location_id=refs.aux_location_id,
                    ),
                ],
            )

        assert _count(session_factory, MovementRecord) == 0
        assert _count(session_factory, InventoryRecord) == 0

    def test_failed_reversal_leaves_original_active(self, ops, refs, session_factory, deterministic_clock):
        [adjusted] = ops.apply_adjustments(
            SUPERUSER, [AdjustmentRequest(material_id=MATERIAL_ID, delta="10", note="count")]
        )
        ops.reserve(SUPERUSER, MATERIAL_ID, "9", refs.field_site_id, refs.project_id)

        with pytest.raises(InsufficientStockError):
            ops.reverse(SUPERUSER, adjusted.movement_id, "recount was wrong")

        movement = ops.get_movement(adjusted.movement_id)
        assert movement.status == MovementStatus.ACTIVE
        assert _count(session_factory, MovementRecord) == 2

    def test_kernel_errors_propagate(self, ops, refs):
        with pytest.raises(SuperuserRequiredError):
            ops.apply_adjustments(
                CLERK, [AdjustmentRequest(material_id=MATERIAL_ID, delta="1", note="x")]
            )

    def test_storage_errors_are_wrapped(self, ops, refs):
        with pytest.raises(StorageError) as exc_info:
            ops.set_parameter(None, "1")
        assert exc_info.value.operation == "set_parameter"


class TestEndToEnd:
    def test_receive_issue_reverse(self, ops, refs, session_factory):
        receipt = ops.receive(SUPERUSER, refs.field_po_id, MATERIAL_ID, "6", "9.5", "MXN")
        issue = ops.issue_from_assignment(SUPERUSER, receipt.assignment_id, "2")
        result = ops.reverse(SUPERUSER, issue.movement_id, "issued to the wrong crew")

        assert _on_hand(session_factory, refs.main_location_id) == (Decimal("0"), Decimal("6"))

        page = ops.query_ledger(LedgerFilter(material_id=MATERIAL_ID))
        assert [row.movement_type for row in page.rows] == [MovementType.ISSUE, MovementType.RECEIVE]
        assert page.rows[0].id == result.compensating_movement_id

        voided = ops.get_movement(issue.movement_id)
        assert voided.status == MovementStatus.VOID
        assert voided.void_reason == "issued to the wrong crew"

    def test_relocate_and_issue_from_stock(self, ops, refs, session_factory):
        ops.apply_adjustments(
            SUPERUSER, [AdjustmentRequest(material_id=MATERIAL_ID, delta="10", note="count")]
        )
        ops.reserve(SUPERUSER, MATERIAL_ID, "5", refs.field_site_id, refs.project_id)
        [held] = ops.list_assignments(MATERIAL_ID)
        assignment_id = held.id

        moved = ops.relocate(SUPERUSER, assignment_id, refs.other_site_id, refs.other_project_id, "2")
        issued = ops.issue_from_stock(SUPERUSER, MATERIAL_ID, "5", refs.other_project_id)

        assert moved.changed is True
        assert sum(s.quantity_taken for s in issued) == Decimal("5")
        assert _on_hand(session_factory, refs.main_location_id) == (Decimal("0"), Decimal("5"))

    def test_stock_listings_read_committed_state(self, ops, refs):
        ops.apply_adjustments(
            SUPERUSER, [AdjustmentRequest(material_id=MATERIAL_ID, delta="10", note="count")]
        )
        ops.reserve(CLERK, MATERIAL_ID, "4", refs.field_site_id, refs.project_id)
        [tower] = ops.list_assignments(MATERIAL_ID)
        ops.relocate(CLERK, tower.id, refs.other_site_id, refs.other_project_id, "1")

        [balance] = ops.list_balances(material_id=MATERIAL_ID)
        [total] = ops.list_material_totals(StockState.RESERVED)
        listed = ops.list_assignments(MATERIAL_ID)

        assert (balance.on_hand, balance.reserved) == (Decimal("6"), Decimal("4"))
        assert total.total_existence == Decimal("10")
        assert [(a.project_name, a.quantity) for a in listed] == [
            ("Bridge", Decimal("1")),
            ("Tower", Decimal("3")),
        ]


class TestLogContext:
    def test_operation_is_bound(self, ops, refs, captured_logs):
        ops.apply_adjustments(
            SUPERUSER, [AdjustmentRequest(material_id=MATERIAL_ID, delta="1", note="count")]
        )

        [entry] = [r for r in captured_logs() if r["message"] == "adjustment_applied"]
        assert entry["operation"] == "apply_adjustments"
        assert entry["actor_id"] == str(SUPERUSER.actor_id)
        assert entry["correlation_id"]

    def test_rollback_is_logged(self, ops, refs, captured_logs):
        with pytest.raises(SuperuserRequiredError):
            ops.reverse(CLERK, 1, "whatever")

        [entry] = [r for r in captured_logs() if r["message"] == "transaction_rolled_back"]
        assert entry["error_code"] == "SUPERUSER_REQUIRED"
