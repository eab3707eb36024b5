"""
Inventory Kernel

Authoritative stock ledger for warehouse and project operations:
- On-hand and reserved balances per material and location
- Reservations earmarked to project / site / requisition destinations
- Append-mostly movement ledger (Kardex) with same-day reversal
- Row-locked, all-or-nothing transactional writes
"""

__version__ = "0.1.0"
