"""
Sales Domain Models (``pharmacy_modules.sales.models``).

Responsibility
--------------
Frozen value objects for the sale flow: the caller's requested lines, the
priced quote, and the committed result.

Invariants
----------
- ``SaleLine.total_unit >= 0`` and ``price >= 0``; the factor is an
  integer >= 1 copied from the item when the line was created.
- All monetary fields are ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

from pharmacy_engines.pricing import PricingResult
from pharmacy_kernel.domain.dtos import (
    InvoiceStatus,
    ItemDefinition,
    SaleInvoice,
    SaleInvoiceLine,
    ServiceCharge,
    StockBatch,
)
from pharmacy_kernel.domain.parsing import parse_decimal
from pharmacy_kernel.exceptions import InvalidFactorError, ValidationError


@dataclass(frozen=True)
class SaleLine:
    """
    One requested sale line against exactly one batch.

    ``total_unit`` is in main units; ``price`` is per sub-unit.
    """

    batch_id: UUID
    item_id: UUID
    total_unit: Decimal
    total_quantity_in_a_unit: int
    price: Decimal
    selling_unit_type: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "total_unit", parse_decimal(self.total_unit, "total_unit"))
        object.__setattr__(self, "price", parse_decimal(self.price, "price"))
        factor = self.total_quantity_in_a_unit
        if isinstance(factor, bool) or not isinstance(factor, int) or factor < 1:
            raise InvalidFactorError(factor)

    @classmethod
    def for_batch(cls, batch: StockBatch, item: ItemDefinition, total_unit: Any) -> SaleLine:
        """Line priced at the batch's selling price with the item's factor."""
        if batch.item_id != item.id:
            raise ValidationError("item_id", item.id, f"batch {batch.id} belongs to another item")
        return cls(
            batch_id=batch.id,
            item_id=item.id,
            total_unit=total_unit,
            total_quantity_in_a_unit=item.total_quantity_in_a_unit,
            price=batch.selling_price,
            selling_unit_type=item.unit_type,
        )


@dataclass(frozen=True)
class SaleQuote:
    """Priced sale before (or without) commit."""

    lines: tuple[SaleInvoiceLine, ...]
    service_charges: tuple[ServiceCharge, ...]
    pricing: PricingResult
    paid_amount: Decimal
    remaining_amount: Decimal
    status: InvoiceStatus

    @property
    def sub_total(self) -> Decimal:
        return self.pricing.sub_total

    @property
    def discount_amount(self) -> Decimal:
        return self.pricing.discount_amount

    @property
    def grand_total(self) -> Decimal:
        return self.pricing.grand_total


@dataclass(frozen=True)
class SaleResult:
    """Outcome of a committed sale."""

    sub_total: Decimal
    discount_amount: Decimal
    grand_total: Decimal
    remaining_amount: Decimal
    status: InvoiceStatus
    invoice: SaleInvoice
