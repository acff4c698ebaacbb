"""
Purchasing Domain Models (``pharmacy_modules.purchasing.models``).

Responsibility
--------------
Frozen, validated inputs for purchase entries and opening stock, and the
result returned to the caller.  Parsing happens in ``__post_init__`` so a
constructed line is always numerically valid.

Invariants
----------
- ``total_purchased_unit``, ``price_per_unit`` and ``mrp`` are > 0;
  ``selling_price`` is >= 0; ``discount`` is within 0-100.
- The tax regime is a tagged union: only the rates owned by the selected
  regime exist.  ``with_tax_type`` switches regime and zeroes the rest.
- ``expiry_date`` is not before ``manufacturing_date``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from pharmacy_engines.pricing import PricingResult
from pharmacy_engines.tax import NO_TAX, TaxRegime, switch_tax_type, tax_regime_from_fields
from pharmacy_kernel.db.types import ZERO
from pharmacy_kernel.domain.dtos import PurchaseRecord, StockBatch
from pharmacy_kernel.domain.parsing import parse_decimal, parse_percent, parse_positive
from pharmacy_kernel.exceptions import ValidationError


def _require_batch_number(batch_number: Any) -> str:
    if not isinstance(batch_number, str) or not batch_number.strip():
        raise ValidationError("batch_number", batch_number, "is required")
    return batch_number.strip()


def _check_dates(manufacturing_date: date | None, expiry_date: date | None) -> None:
    if manufacturing_date and expiry_date and expiry_date < manufacturing_date:
        raise ValidationError(
            "expiry_date", expiry_date, f"is before manufacturing date {manufacturing_date}"
        )


@dataclass(frozen=True)
class PurchaseLine:
    """
    One purchased batch of an item.

    Quantities and prices are per MAIN unit; the processor converts them
    to sub-units when it creates or tops up the batch.
    """

    item_id: UUID
    batch_number: str
    total_purchased_unit: Decimal
    price_per_unit: Decimal
    mrp: Decimal
    selling_price: Decimal
    tax: TaxRegime = NO_TAX
    discount: Decimal = ZERO
    manufacturing_date: date | None = None
    expiry_date: date | None = None
    purchase_date: date | None = None
    hsn_code: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "batch_number", _require_batch_number(self.batch_number))
        object.__setattr__(
            self,
            "total_purchased_unit",
            parse_positive(self.total_purchased_unit, "total_purchased_unit"),
        )
        object.__setattr__(
            self, "price_per_unit", parse_positive(self.price_per_unit, "price_per_unit")
        )
        object.__setattr__(self, "mrp", parse_positive(self.mrp, "mrp"))
        object.__setattr__(
            self, "selling_price", parse_decimal(self.selling_price, "selling_price")
        )
        object.__setattr__(self, "discount", parse_percent(self.discount, "discount"))
        _check_dates(self.manufacturing_date, self.expiry_date)

    @classmethod
    def from_fields(
        cls,
        *,
        tax_type: Any,
        cgst: Any = ZERO,
        sgst: Any = ZERO,
        igst: Any = ZERO,
        **kwargs: Any,
    ) -> PurchaseLine:
        """Build from the flat purchase form (``taxType`` plus three rates)."""
        return cls(tax=tax_regime_from_fields(tax_type, cgst, sgst, igst), **kwargs)

    @property
    def tax_type(self) -> str:
        return self.tax.kind.value

    @property
    def cgst(self) -> Decimal:
        return self.tax.rates()["cgst"]

    @property
    def sgst(self) -> Decimal:
        return self.tax.rates()["sgst"]

    @property
    def igst(self) -> Decimal:
        return self.tax.rates()["igst"]

    def with_tax_type(self, kind: Any) -> PurchaseLine:
        """Copy under another regime; rates the new regime does not own are 0."""
        return replace(self, tax=switch_tax_type(self.tax, kind))


@dataclass(frozen=True)
class OpeningStock:
    """
    Stock already on the shelf when the system is first used.

    ``main_units`` and ``selling_price`` are per main unit, as entered on
    the opening-stock form.
    """

    item_id: UUID
    batch_number: str
    main_units: Decimal
    selling_price: Decimal
    manufacturing_date: date | None = None
    expiry_date: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "batch_number", _require_batch_number(self.batch_number))
        object.__setattr__(self, "main_units", parse_positive(self.main_units, "main_units"))
        object.__setattr__(
            self, "selling_price", parse_positive(self.selling_price, "selling_price")
        )
        _check_dates(self.manufacturing_date, self.expiry_date)


@dataclass(frozen=True)
class PurchaseResult:
    """Totals of a committed purchase and the batch it created or topped up."""

    total_price: Decimal
    taxable_amount: Decimal
    grand_total: Decimal
    batch: StockBatch
    created: bool
    pricing: PricingResult
    record: PurchaseRecord
