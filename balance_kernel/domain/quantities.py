"""
Quantity handling for balance computation.

Responsibility:
    Converts values arriving from stores and user input into ``Decimal``
    quantities without losing precision.

Invariants enforced:
    - No floats reach the recurrence.  Floats are converted through their
      shortest ``repr`` (``Decimal(str(x))``) so ``0.1`` stays ``0.1``.
    - Fractional units (kilograms) are never truncated.

Failure modes:
    - InvalidAdjustmentError from ``parse_adjustment(..., strict=True)``.
    - ValueError from ``to_quantity`` on a non-numeric store value.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from balance_kernel.exceptions import InvalidAdjustmentError

ZERO = Decimal("0")


def to_quantity(value: object) -> Decimal:
    """
    Normalize a stored quantity to ``Decimal``.

    ``None`` (e.g. an unset wastage column) counts as zero.

    Raises:
        ValueError: If the value is not numeric or not finite.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"Quantity must be numeric, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"Quantity must be numeric, got {value!r}") from None
    else:
        raise ValueError(f"Quantity must be numeric, got {value!r}")
    if not result.is_finite():
        raise ValueError(f"Quantity must be finite, got {value!r}")
    return result


def parse_adjustment(value: object, *, strict: bool = False) -> Decimal:
    """
    Parse a user-entered manual adjustment.

    Lenient by default: blank, ``None`` or non-numeric input becomes zero,
    matching how the status page treats an unparseable adjustment cell.

    Args:
        value: Raw input (string from a form, number, or Decimal).
        strict: Raise instead of defaulting to zero.

    Raises:
        InvalidAdjustmentError: Only when ``strict`` is True.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if strict:
            raise InvalidAdjustmentError(value)
        return ZERO
    try:
        return to_quantity(value)
    except ValueError:
        if strict:
            raise InvalidAdjustmentError(value) from None
        return ZERO


def is_valid_adjustment(value: object) -> bool:
    """True if ``value`` parses strictly."""
    try:
        parse_adjustment(value, strict=True)
        return True
    except InvalidAdjustmentError:
        return False
