"""
Settings schema (``inventory_config.schema``).

Responsibility
--------------
Frozen dataclass describing every runtime knob of the inventory ledger.
Parsed from YAML by ``inventory_config.loader``; consumed by the kernel's
services through constructor injection.

Architecture position
---------------------
**Config layer**.  This package never imports from ``inventory_kernel``; the
kernel imports ``LedgerSettings`` from here.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LedgerSettings:
    """
    Runtime settings for the inventory ledger.

    Attributes:
        reference_timezone: IANA zone whose calendar day bounds the
            same-day reversal window and ledger date filters.
        central_warehouse_parameter: Key in the system-parameter table
            holding the central-warehouse site id.
        min_reversal_reason_length: Minimum stripped length of a reversal
            reason.
        max_reversal_reason_length: Maximum stripped length of a reversal
            reason; never more than the void_reason column holds.
        default_page_size: Ledger query limit when the caller gives none.
        max_page_size: Upper clamp for ledger query limits.
    """

    reference_timezone: str = "America/Mexico_City"
    central_warehouse_parameter: str = "central_warehouse_site_id"
    min_reversal_reason_length: int = 3
    max_reversal_reason_length: int = 500
    default_page_size: int = 100
    max_page_size: int = 500
