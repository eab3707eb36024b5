"""Database layer - engine, base class, column types, and immutability."""

from inventory_kernel.db.base import Base, IdentityKey
from inventory_kernel.db.engine import (
    create_engine_from_url,
    create_tables,
    drop_tables,
    make_session_factory,
    session_scope,
)
from inventory_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from inventory_kernel.db.types import CurrencyColumn, QuantityColumn, normalize_currency

__all__ = [
    "Base",
    "IdentityKey",
    "create_engine_from_url",
    "make_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "register_immutability_listeners",
    "unregister_immutability_listeners",
    "QuantityColumn",
    "CurrencyColumn",
    "normalize_currency",
]
