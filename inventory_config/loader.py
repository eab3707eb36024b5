"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a frozen ``LedgerSettings``.
The single public entry point for runtime settings is
``inventory_config.get_active_settings()``.

Invariants enforced
-------------------
* Unknown keys are rejected rather than ignored.
* Every value is type-checked; the timezone must resolve through
  ``zoneinfo``; page sizes must satisfy 1 <= default <= max.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or invalid value  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from inventory_config.schema import LedgerSettings

_INT_KEYS = (
    "min_reversal_reason_length",
    "max_reversal_reason_length",
    "default_page_size",
    "max_page_size",
)
_STR_KEYS = ("reference_timezone", "central_warehouse_parameter")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Parse the ``ledger`` section of a settings document.

    Keys that are absent fall back to the LedgerSettings defaults.

    Raises:
        ValueError: on unknown keys or invalid values.
    """
    section = data.get("ledger", {}) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise ValueError("Settings document must contain a 'ledger' mapping")

    unknown_top = set(data) - {"ledger"}
    if unknown_top:
        raise ValueError(f"Unknown settings sections: {sorted(unknown_top)}")

    known = {f.name for f in fields(LedgerSettings)}
    unknown = set(section) - known
    if unknown:
        raise ValueError(f"Unknown ledger settings: {sorted(unknown)}")

    for key in _INT_KEYS:
        if key in section:
            value = section[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"ledger.{key} must be an integer, got {value!r}")

    for key in _STR_KEYS:
        if key in section:
            value = section[key]
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"ledger.{key} must be a non-empty string, got {value!r}")

    settings = LedgerSettings(**section)
    _validate(settings)
    return settings


def _validate(settings: LedgerSettings) -> None:
    try:
        ZoneInfo(settings.reference_timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(
            f"Unknown reference_timezone: {settings.reference_timezone!r}"
        ) from exc

    if settings.min_reversal_reason_length < 1:
        raise ValueError("min_reversal_reason_length must be at least 1")
    if settings.max_reversal_reason_length < settings.min_reversal_reason_length:
        raise ValueError(
            "max_reversal_reason_length must not be below min_reversal_reason_length "
            f"({settings.max_reversal_reason_length} / {settings.min_reversal_reason_length})"
        )
    if settings.max_page_size < 1:
        raise ValueError("max_page_size must be at least 1")
    if not 1 <= settings.default_page_size <= settings.max_page_size:
        raise ValueError(
            "default_page_size must be between 1 and max_page_size "
            f"({settings.default_page_size} / {settings.max_page_size})"
        )
