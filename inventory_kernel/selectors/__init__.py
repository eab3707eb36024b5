"""Read-only selectors."""

from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.ledger_query import LedgerQueryService
from inventory_kernel.selectors.stock_query import StockQueryService

__all__ = ["BaseSelector", "LedgerQueryService", "StockQueryService"]
