"""
inventory_config -- single public entrypoint for ledger settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  Returns a frozen ``LedgerSettings``.

Architecture position:
    Configuration.  Imported by ``inventory_kernel`` (for the
    ``LedgerSettings`` type) and by callers that build the operations
    facade; it never imports from the kernel.

Failure modes:
    - ``FileNotFoundError`` -- the requested settings file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful call emits an ``inventory_config_loaded`` log entry with
    the source path and the effective settings.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path

from inventory_config.loader import load_yaml_file, parse_settings
from inventory_config.schema import LedgerSettings

_logger = logging.getLogger("inventory_kernel.config")

_DEFAULT_SETTINGS_FILE = Path(__file__).parent / "defaults.yaml"


def get_active_settings(config_path: Path | None = None) -> LedgerSettings:
    """The ONLY public settings entrypoint.

    Args:
        config_path: Override path to a settings YAML file.  Defaults to
            the packaged ``defaults.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_SETTINGS_FILE
    settings = parse_settings(load_yaml_file(path))

    _logger.info(
        "inventory_config_loaded",
        extra={"source": str(path), **asdict(settings)},
    )
    return settings


__all__ = [
    "LedgerSettings",
    "get_active_settings",
    "load_yaml_file",
    "parse_settings",
]
