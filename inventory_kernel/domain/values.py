"""
Values -- Immutable domain value objects and input coercion.

Responsibility:
    Provides the small value types every operation is phrased in: the
    calling Actor, the reservation Destination, and quantity parsing that
    turns caller input into a bounded Decimal.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Quantities are finite Decimals with at most 9 decimal places and 29
      integer digits (the column scale and precision); float arithmetic
      never reaches the ledger.
    - Destination identity is explicit: requisition_id=None is the "no
      requisition" variant and matches only another None.

Failure modes:
    - ValidationError on non-numeric, non-finite, over-precise or
      out-of-range quantities.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from inventory_kernel.db.types import QUANTITY_DECIMAL_PLACES, QUANTITY_INTEGER_DIGITS, ZERO
from inventory_kernel.exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class Actor:
    """
    The user invoking an operation.

    Authentication happens in the calling layer; the kernel only needs the
    id for the audit trail and the superuser capability for guarded
    operations.
    """

    actor_id: int
    is_superuser: bool = False


@dataclass(frozen=True, slots=True)
class Destination:
    """
    Where a reservation is earmarked: (project, site, optional requisition).

    Contract:
        ``requisition_id=None`` means "no requisition".  Two destinations
        match only when project, site and requisition are all equal, with
        None matching None and never matching a concrete id.
    """

    project_id: int
    site_id: int
    requisition_id: int | None = None

    def matches(self, other: Destination) -> bool:
        """Full pool identity, requisition included."""
        return (
            self.project_id == other.project_id
            and self.site_id == other.site_id
            and _same_requisition(self.requisition_id, other.requisition_id)
        )

    def same_place(self, other: Destination) -> bool:
        """Same project and site, regardless of requisition."""
        return self.project_id == other.project_id and self.site_id == other.site_id

    def with_place(self, project_id: int, site_id: int) -> Destination:
        """Copy with a new project and site, keeping the requisition."""
        return Destination(project_id, site_id, self.requisition_id)


def _same_requisition(left: int | None, right: int | None) -> bool:
    if left is None or right is None:
        return left is None and right is None
    return left == right


def parse_quantity(value: Any, field: str = "quantity") -> Decimal:
    """
    Coerce caller input to a Decimal quantity.

    Accepts Decimal, int, or a numeric string (a decimal comma is read as a
    decimal point).  Floats go through ``str()`` so 0.1 stays 0.1.

    Raises:
        ValidationError: If the value is missing, boolean, not numeric, not
            finite, or has more than 9 decimal places or 29 integer digits.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required and must be numeric", field=field)

    if isinstance(value, Decimal):
        result = value
    else:
        text = str(value).strip().replace(",", ".")
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"{field} must be numeric, got {value!r}", field=field)

    if not result.is_finite():
        raise ValidationError(f"{field} must be finite, got {value!r}", field=field)

    if result and result.adjusted() >= QUANTITY_INTEGER_DIGITS:
        raise ValidationError(
            f"{field} supports at most {QUANTITY_INTEGER_DIGITS} integer digits, "
            f"got {value!r}",
            field=field,
        )

    exponent = result.as_tuple().exponent
    if isinstance(exponent, int) and exponent < -QUANTITY_DECIMAL_PLACES:
        normalized = result.normalize()
        if normalized.as_tuple().exponent < -QUANTITY_DECIMAL_PLACES:
            raise ValidationError(
                f"{field} supports at most {QUANTITY_DECIMAL_PLACES} decimal places, "
                f"got {value!r}",
                field=field,
            )
        result = normalized
    return result


def parse_positive_quantity(value: Any, field: str = "quantity") -> Decimal:
    """parse_quantity, then require the result to be > 0."""
    result = parse_quantity(value, field)
    if result <= ZERO:
        raise ValidationError(f"{field} must be greater than zero, got {value!r}", field=field)
    return result


def require_id(value: Any, field: str) -> int:
    """Require a positive integer id."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer id, got {value!r}", field=field)
    return value


def optional_id(value: Any, field: str) -> int | None:
    """require_id, allowing None."""
    if value is None:
        return None
    return require_id(value, field)
