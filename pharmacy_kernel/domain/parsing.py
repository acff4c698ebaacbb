"""
Numeric parsing boundary.

Responsibility:
    The one place where loosely-typed form values (strings from the purchase
    and sale screens, ints, Decimals) become validated ``Decimal`` values.
    Nothing past this boundary coerces numbers ad hoc.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Failure modes:
    - ValidationError for bool, NaN/infinity, empty or non-numeric strings,
      magnitudes above MAX_MAGNITUDE, and values outside the requested range.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from pharmacy_kernel.db.types import HUNDRED, MAX_MAGNITUDE, ZERO
from pharmacy_kernel.exceptions import ValidationError


def parse_decimal(
    value: Any,
    field: str,
    *,
    minimum: Decimal | None = ZERO,
    maximum: Decimal | None = None,
) -> Decimal:
    """
    Convert ``value`` to a finite Decimal within ``[minimum, maximum]``.

    Floats go through ``str()`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.

    Raises:
        ValidationError: If the value is not numeric or out of range.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(field, value, "must be a number")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = _to_decimal(str(value), field, value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValidationError(field, value, "must not be empty")
        result = _to_decimal(text, field, value)
    else:
        raise ValidationError(field, value, "must be a number")

    if not result.is_finite():
        raise ValidationError(field, value, "must be finite")
    if abs(result) > MAX_MAGNITUDE:
        raise ValidationError(field, value, f"magnitude must be <= {MAX_MAGNITUDE:f}")
    if minimum is not None and result < minimum:
        raise ValidationError(field, value, f"must be >= {minimum}")
    if maximum is not None and result > maximum:
        raise ValidationError(field, value, f"must be <= {maximum}")
    return result


def parse_percent(value: Any, field: str) -> Decimal:
    """Parse a percentage in the closed range 0-100."""
    return parse_decimal(value, field, minimum=ZERO, maximum=HUNDRED)


def parse_positive(value: Any, field: str) -> Decimal:
    """Parse a strictly positive number."""
    result = parse_decimal(value, field, minimum=ZERO)
    if result == ZERO:
        raise ValidationError(field, value, "must be > 0")
    return result


def _to_decimal(text: str, field: str, original: Any) -> Decimal:
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValidationError(field, original, "must be a number") from None
