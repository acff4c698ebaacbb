"""
Module: pharmacy_kernel.db.types
Responsibility: Annotated type aliases and the rounding function for
    quantity and money columns.  Centralizes precision and rounding so that
    every model, engine and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    stores/, services/ and the engines.  MUST NOT import from any of those.

Invariants enforced:
    - round_money() is the ONLY sanctioned rounding function.  Unit
      conversion, line totals, discounts and taxes all delegate to it.
    - No floats: every quantity and amount is a Decimal.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated

from sqlalchemy import Numeric, String

from pharmacy_kernel.exceptions import ValidationError


# Monetary amount / quantity storage: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Sub-unit quantity (stored with the same precision as money)
Quantity = Annotated[Decimal, Numeric(38, 9)]

# Percentage rate (0-100)
Percent = Annotated[Decimal, Numeric(9, 4)]

# Short identifier strings
ShortCode = Annotated[str, String(50)]

# Long text for reasons and notes
LongText = Annotated[str, String(4000)]


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Largest magnitude accepted at the parsing boundary.  Products of two
# such values that exceed the decimal context fail in round_money().
MAX_MAGNITUDE = Decimal("1e15")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a quantity or monetary value to ``decimal_places`` (half-up).

    This is the single source of truth for rounding.  ``round2`` in the unit
    conversion engine and every pricing figure delegate here.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.

    Raises:
        ValidationError: If the value has too many digits to round.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places else "1"
    try:
        return value.quantize(Decimal(quantize_str), rounding=rounding)
    except InvalidOperation:
        raise ValidationError(
            "amount", value, f"too large to round to {decimal_places} places"
        ) from None
