"""Kernel services (writers).  Each receives a Session and never commits."""

from inventory_kernel.services.adjustment_service import AdjustmentService
from inventory_kernel.services.allocation_service import AllocationService
from inventory_kernel.services.assignment_pool import AssignmentPool, PoolSlice
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_store import InventoryRecordStore
from inventory_kernel.services.issue_service import IssueService
from inventory_kernel.services.movement_ledger import MovementLedger
from inventory_kernel.services.operations import InventoryOperations
from inventory_kernel.services.parameter_service import ParameterService
from inventory_kernel.services.receipt_service import ReceiptService
from inventory_kernel.services.reversal_engine import ReversalEngine

__all__ = [
    "AdjustmentService",
    "AllocationService",
    "AssignmentPool",
    "PoolSlice",
    "BaseService",
    "InventoryRecordStore",
    "IssueService",
    "MovementLedger",
    "InventoryOperations",
    "ParameterService",
    "ReceiptService",
    "ReversalEngine",
]
