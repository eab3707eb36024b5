"""
ParameterService -- key/value system parameters.

Responsibility:
    Reads and upserts rows of system_parameters, and resolves the
    central-warehouse site id under the key configured in LedgerSettings.

Failure modes:
    - CentralWarehouseNotConfiguredError: the central-warehouse parameter
      holds a value that is not an integer site id.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_config.schema import LedgerSettings
from inventory_kernel.exceptions import CentralWarehouseNotConfiguredError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.reference import SystemParameter
from inventory_kernel.services.base import BaseService

logger = get_logger("services.parameter")


class ParameterService(BaseService):
    def __init__(self, session: Session, settings: LedgerSettings | None = None):
        super().__init__(session)
        self._settings = settings or LedgerSettings()

    def get(self, key: str) -> str | None:
        return self.session.execute(
            select(SystemParameter.value).where(SystemParameter.key == key)
        ).scalar_one_or_none()

    def set(self, key: str, value: str | None) -> None:
        row = self.session.execute(
            select(SystemParameter).where(SystemParameter.key == key)
        ).scalar_one_or_none()
        if row is None:
            self.session.add(SystemParameter(key=key, value=value))
        else:
            row.value = value
        self.session.flush()
        logger.info("system_parameter_set", extra={"key": key})

    def central_warehouse_site_id(self) -> int | None:
        """The configured central-warehouse site, or None when unset/blank."""
        key = self._settings.central_warehouse_parameter
        raw = self.get(key)
        if raw is None or not raw.strip():
            return None
        try:
            return int(raw.strip())
        except ValueError:
            logger.error("system_parameter_invalid", extra={"key": key, "value": raw})
            raise CentralWarehouseNotConfiguredError(key)
