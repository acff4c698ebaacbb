"""
Pricing Calculator - subtotal, discount, taxable amount, grand total.

Used identically for purchase entries and sale invoices.  The order of
stages is fixed:

    sub_total       = sum of line totals
    discount_amount = sub_total * discount% / 100
    taxable_amount  = max(0, sub_total - discount_amount)
    tax             = TaxEngine.compute_tax(taxable_amount, regime)
    grand_total     = max(0, taxable_amount + tax)

Discount is always applied before tax; tax is never computed on the raw
subtotal.  Every figure is rounded half-up to the configured money places.

Pure functions with no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from pharmacy_config import EngineSettings, get_settings
from pharmacy_engines.tax import NO_TAX, TaxBreakdown, TaxEngine, TaxRegime
from pharmacy_engines.tracer import traced_engine
from pharmacy_kernel.db.types import HUNDRED, ZERO, round_money
from pharmacy_kernel.domain.parsing import parse_decimal, parse_percent


@dataclass(frozen=True)
class PricingResult:
    """All totals of one priced document."""

    sub_total: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    tax: TaxBreakdown
    grand_total: Decimal

    @property
    def tax_amount(self) -> Decimal:
        return self.tax.total


class PricingCalculator:
    """Stage-by-stage pricing; ``quote`` runs the whole pipeline."""

    def __init__(
        self,
        tax_engine: TaxEngine | None = None,
        settings: EngineSettings | None = None,
    ):
        self._settings = settings or get_settings()
        self._tax_engine = tax_engine or TaxEngine(self._settings)

    def _round(self, value: Decimal) -> Decimal:
        return round_money(value, self._settings.money_places)

    def line_total(self, price: Any, quantity: Any) -> Decimal:
        """``price * quantity``; sale lines pass sub-units, purchases main units."""
        return self._round(parse_decimal(price, "price") * parse_decimal(quantity, "quantity"))

    def sub_total(self, line_totals: Iterable[Decimal]) -> Decimal:
        return self._round(sum((parse_decimal(t, "line_total") for t in line_totals), ZERO))

    def discount_amount(self, sub_total: Any, discount_percent: Any) -> Decimal:
        percent = parse_percent(discount_percent, "discount")
        return self._round(parse_decimal(sub_total, "sub_total") * percent / HUNDRED)

    def taxable_amount(self, sub_total: Decimal, discount_amount: Decimal) -> Decimal:
        """Clamped at zero so a discount can never produce a negative tax base."""
        return self._round(max(sub_total - discount_amount, ZERO))

    def grand_total(self, taxable_amount: Decimal, tax: Decimal) -> Decimal:
        return self._round(max(taxable_amount + tax, ZERO))

    @traced_engine(
        "pricing", "1.0", fingerprint_fields=("line_totals", "discount_percent", "regime")
    )
    def quote(
        self,
        line_totals: Iterable[Decimal],
        discount_percent: Any = ZERO,
        regime: TaxRegime = NO_TAX,
    ) -> PricingResult:
        percent = parse_percent(discount_percent, "discount")
        sub_total = self.sub_total(line_totals)
        discount = self.discount_amount(sub_total, percent)
        taxable = self.taxable_amount(sub_total, discount)
        tax = self._tax_engine.compute_tax(taxable_amount=taxable, regime=regime)
        return PricingResult(
            sub_total=sub_total,
            discount_percent=percent,
            discount_amount=discount,
            taxable_amount=taxable,
            tax=tax,
            grand_total=self.grand_total(taxable, tax.total),
        )
