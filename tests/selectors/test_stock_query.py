"""
Tests for StockQueryService.

Verifies:
- Balances are listed per (material, location) with both filters
- Material totals sum locations and honor the stock state
- Project and site narrow ALL and RESERVED listings to live reservations
- Assignment listings show only live rows, ordered by project then site
"""

from decimal import Decimal

import pytest

from inventory_kernel.domain.dtos import StockState
from tests.conftest import CLERK, MATERIAL_ID, OTHER_MATERIAL_ID


@pytest.fixture
def stocked(stock, allocation_service, reference_data):
    """
    Material 101: main 10 (4.00 MXN), aux 3.  Material 202: aux 5.
    Then 101 reserves 4 for Tower / field and 2 for Bridge / other
    (requisition 7), both taken from main.
    """
    stock(MATERIAL_ID, reference_data.main_location_id, "10", unit_price="4", currency="MXN")
    stock(MATERIAL_ID, reference_data.aux_location_id, "3")
    stock(OTHER_MATERIAL_ID, reference_data.aux_location_id, "5")
    allocation_service.reserve(
        CLERK, MATERIAL_ID, "4", reference_data.field_site_id, reference_data.project_id
    )
    allocation_service.reserve(
        CLERK,
        MATERIAL_ID,
        "2",
        reference_data.other_site_id,
        reference_data.other_project_id,
        requisition_id=7,
    )
    return reference_data


class TestBalances:
    def test_all_records_in_material_location_order(self, stock_query, stocked):
        rows = stock_query.balances()
        assert [(r.material_id, r.location_id) for r in rows] == [
            (MATERIAL_ID, stocked.main_location_id),
            (MATERIAL_ID, stocked.aux_location_id),
            (OTHER_MATERIAL_ID, stocked.aux_location_id),
        ]

    def test_material_filter(self, stock_query, stocked):
        main, aux = stock_query.balances(material_id=MATERIAL_ID)
        assert (main.on_hand, main.reserved) == (Decimal("4"), Decimal("6"))
        assert main.total_existence == Decimal("10")
        assert main.last_unit_cost == Decimal("4")
        assert main.currency == "MXN"
        assert (aux.on_hand, aux.reserved) == (Decimal("3"), Decimal("0"))

    def test_location_filter(self, stock_query, stocked):
        rows = stock_query.balances(location_id=stocked.aux_location_id)
        assert [r.material_id for r in rows] == [MATERIAL_ID, OTHER_MATERIAL_ID]

    def test_unknown_material_is_empty(self, stock_query, stocked):
        assert stock_query.balances(material_id=999) == []


class TestMaterialTotals:
    def test_sums_every_location(self, stock_query, stocked):
        first, second = stock_query.material_totals()
        assert first.material_id == MATERIAL_ID
        assert (first.on_hand, first.reserved) == (Decimal("7"), Decimal("6"))
        assert first.total_existence == Decimal("13")
        assert second.material_id == OTHER_MATERIAL_ID
        assert (second.on_hand, second.reserved) == (Decimal("5"), Decimal("0"))

    def test_reserved_state(self, stock_query, stocked):
        rows = stock_query.material_totals(StockState.RESERVED)
        assert [r.material_id for r in rows] == [MATERIAL_ID]

    def test_available_state(self, stock_query, stocked, stock):
        stock(OTHER_MATERIAL_ID, stocked.aux_location_id, "-5")
        rows = stock_query.material_totals("available")
        assert [r.material_id for r in rows] == [MATERIAL_ID]

    @pytest.mark.parametrize(
        "project_attr, site_attr, expected",
        [
            ("other_project_id", None, [MATERIAL_ID]),
            (None, "field_site_id", [MATERIAL_ID]),
            ("other_project_id", "field_site_id", []),
            (None, "central_site_id", []),
        ],
    )
    def test_destination_narrows_listing(self, stock_query, stocked, project_attr, site_attr, expected):
        project_id = getattr(stocked, project_attr) if project_attr else None
        site_id = getattr(stocked, site_attr) if site_attr else None
        rows = stock_query.material_totals(project_id=project_id, site_id=site_id)
        assert [r.material_id for r in rows] == expected

    def test_destination_ignored_for_available(self, stock_query, stocked):
        rows = stock_query.material_totals(
            StockState.AVAILABLE, site_id=stocked.central_site_id
        )
        assert [r.material_id for r in rows] == [MATERIAL_ID, OTHER_MATERIAL_ID]

    def test_drained_reservation_no_longer_matches(
        self, stock_query, stocked, issue_service, superuser
    ):
        bridge = next(
            a for a in stock_query.assignments_for_material(MATERIAL_ID)
            if a.project_id == stocked.other_project_id
        )
        issue_service.issue_from_assignment(superuser, bridge.id, "2")
        assert stock_query.material_totals(project_id=stocked.other_project_id) == []


class TestAssignmentsForMaterial:
    def test_ordered_by_project_then_site(self, stock_query, stocked, deterministic_clock):
        bridge, tower = stock_query.assignments_for_material(MATERIAL_ID)

        assert (bridge.project_name, bridge.site_name) == ("Bridge", "Other site")
        assert bridge.requisition_id == 7
        assert bridge.quantity == Decimal("2")
        assert bridge.location_id == stocked.main_location_id

        assert (tower.project_name, tower.site_name) == ("Tower", "Field site")
        assert tower.requisition_id is None
        assert tower.quantity == Decimal("4")
        assert tower.unit_value == Decimal("4")
        assert tower.currency == "MXN"
        assert tower.assigned_at == deterministic_clock.now()

    def test_ids_feed_issue_from_assignment(self, stock_query, stocked, issue_service, superuser):
        tower = next(
            a for a in stock_query.assignments_for_material(MATERIAL_ID)
            if a.project_id == stocked.project_id
        )
        issue_service.issue_from_assignment(superuser, tower.id, "4")

        remaining = stock_query.assignments_for_material(MATERIAL_ID)
        assert [a.project_id for a in remaining] == [stocked.other_project_id]

    def test_material_without_reservations(self, stock_query, stocked):
        assert stock_query.assignments_for_material(OTHER_MATERIAL_ID) == []
