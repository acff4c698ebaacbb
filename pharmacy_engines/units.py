"""
Unit Conversion - main units to sub-units and back.

A main unit (bottle, strip, box) holds ``total_quantity_in_a_unit``
sub-units (tablets, ml).  Stock is always kept in sub-units; prices and
purchase quantities are quoted per main unit.

Pure functions with no I/O.  ``round2`` is the one rounding rule used
by every component that converts units.

Usage:
    from pharmacy_engines.units import UnitConversionService

    units = UnitConversionService()
    units.to_sub_units(Decimal("2.5"), 10)    # Decimal("25.00")
    units.to_main_units(Decimal("25"), 10)    # Decimal("2.50")
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal
from typing import Any

from pharmacy_kernel.db.types import MONEY_DECIMAL_PLACES, ZERO, round_money
from pharmacy_kernel.domain.parsing import parse_decimal
from pharmacy_kernel.exceptions import InvalidFactorError, InvalidQuantityError, ValidationError


def round2(value: Decimal) -> Decimal:
    """Round half-up to 2 decimal places."""
    return round_money(value, MONEY_DECIMAL_PLACES)


class UnitConversionService:
    """
    Convert between main units and sub-units.

    Raises:
        InvalidFactorError: factor is non-numeric or below 1.  Fractional
            factors of 1 or more are accepted.
        InvalidQuantityError: quantity is negative.
    """

    def to_sub_units(self, main_units: Any, factor: Any) -> Decimal:
        """``round2(main_units * factor)``."""
        factor_value = self._factor(factor)
        quantity = self._quantity(main_units, "main_units")
        return round2(quantity * factor_value)

    def to_main_units(self, sub_units: Any, factor: Any) -> Decimal:
        """``round2(sub_units / factor)``."""
        factor_value = self._factor(factor)
        quantity = self._quantity(sub_units, "sub_units")
        return round2(quantity / factor_value)

    def whole_main_units(self, sub_units: Any, factor: Any) -> int:
        """Number of complete main units in ``sub_units`` (floor)."""
        factor_value = self._factor(factor)
        quantity = self._quantity(sub_units, "sub_units")
        return int((quantity / factor_value).to_integral_value(rounding=ROUND_FLOOR))

    def price_per_sub_unit(self, price_per_main_unit: Any, factor: Any) -> Decimal:
        """A per-main-unit price spread over its sub-units, rounded to 2 places."""
        factor_value = self._factor(factor)
        price = self._quantity(price_per_main_unit, "price")
        return round2(price / factor_value)

    @staticmethod
    def _factor(factor: Any) -> Decimal:
        if isinstance(factor, bool):
            raise InvalidFactorError(factor)
        try:
            value = parse_decimal(factor, "total_quantity_in_a_unit", minimum=None)
        except ValidationError:
            raise InvalidFactorError(factor) from None
        if value < 1:
            raise InvalidFactorError(factor)
        return value

    @staticmethod
    def _quantity(value: Any, field: str) -> Decimal:
        quantity = parse_decimal(value, field, minimum=None)
        if quantity < ZERO:
            raise InvalidQuantityError(field, value)
        return quantity
