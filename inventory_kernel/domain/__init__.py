"""Domain layer - clock, value objects and boundary DTOs."""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.values import (
    Actor,
    Destination,
    parse_positive_quantity,
    parse_quantity,
    require_id,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "Actor",
    "Destination",
    "parse_quantity",
    "parse_positive_quantity",
    "require_id",
]
