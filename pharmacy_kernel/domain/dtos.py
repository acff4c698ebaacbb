"""
Kernel DTOs -- frozen value objects exchanged with the stores.

Responsibility:
    The nouns the stock ledger and the stores agree on: catalog items,
    stock batches, stock adjustment audit records, committed sale invoices,
    and purchase records.  These carry no database identity semantics beyond
    their ``id`` and no I/O.

Architecture position:
    Kernel > Domain -- pure data.  Imported by stores, services, engines and
    modules.

Invariants enforced:
    - ItemDefinition.total_quantity_in_a_unit >= 1.
    - StockBatch.total_quantity >= 0 (a batch is never materialized below
      zero; the ledger refuses such writes before they reach a store).
    - StockAdjustment.total_quantity > 0.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from pharmacy_kernel.db.types import ZERO
from pharmacy_kernel.exceptions import (
    InvalidFactorError,
    InvalidQuantityError,
    ValidationError,
)


class AdjustType(str, Enum):
    """Direction of a manual stock adjustment."""

    ADD = "add"
    REDUCE = "reduce"


class InvoiceStatus(str, Enum):
    """Payment status derived from the remaining amount."""

    PAID = "paid"
    PENDING = "pending"


@dataclass(frozen=True)
class ItemDefinition:
    """
    A catalog item (medicine or panchakarma consumable).

    ``unit_type`` labels the main unit ("bottle", "strip"); one main unit
    holds ``total_quantity_in_a_unit`` sub-units.  Read-only to the engine.
    """

    id: UUID
    name: str
    unit_type: str
    total_quantity_in_a_unit: int

    def __post_init__(self) -> None:
        if isinstance(self.total_quantity_in_a_unit, bool) or not isinstance(
            self.total_quantity_in_a_unit, int
        ):
            raise ValidationError(
                "total_quantity_in_a_unit",
                self.total_quantity_in_a_unit,
                "must be an integer",
            )
        if self.total_quantity_in_a_unit < 1:
            raise InvalidFactorError(self.total_quantity_in_a_unit)


@dataclass(frozen=True)
class StockBatch:
    """
    A stock lot of one item, identified by item + batch number.

    ``total_quantity`` is the remaining quantity in sub-units and
    ``selling_price`` is per sub-unit.  ``version`` increments on every
    quantity write and is the compare-and-swap token.
    """

    item_id: UUID
    batch_number: str
    total_quantity: Decimal
    selling_price: Decimal
    manufacturing_date: date | None = None
    expiry_date: date | None = None
    purchase_date: date | None = None
    version: int = 0
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if self.total_quantity < ZERO:
            raise InvalidQuantityError("total_quantity", self.total_quantity)
        if not self.batch_number or not self.batch_number.strip():
            raise ValidationError("batch_number", self.batch_number, "is required")

    def with_quantity(self, quantity: Decimal) -> StockBatch:
        """Copy with a new remaining quantity and the next version."""
        return replace(self, total_quantity=quantity, version=self.version + 1)


@dataclass(frozen=True)
class StockAdjustment:
    """
    Append-only audit record of one manual add/reduce.

    ``total_quantity`` is the literal sub-unit amount requested by the
    caller, never the resulting balance.
    """

    item_id: UUID
    batch_id: UUID
    batch_number: str
    adjustment_date: datetime
    total_quantity: Decimal
    adjust_type: AdjustType
    reason: str | None = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if self.total_quantity <= ZERO:
            raise InvalidQuantityError(
                "total_quantity", self.total_quantity, "must be > 0"
            )


@dataclass(frozen=True)
class ServiceCharge:
    """A non-stock invoice line (therapy or procedure fee)."""

    name: str
    price: Decimal


@dataclass(frozen=True)
class SaleInvoiceLine:
    """One committed invoice line against exactly one batch."""

    batch_id: UUID
    item_id: UUID
    selling_unit_type: str
    total_unit: Decimal
    total_quantity_in_a_unit: int
    sub_units: Decimal
    price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class SaleInvoice:
    """
    A committed sale.

    Immutable once persisted except for the void fields, which the
    reversal flow sets exactly once.
    """

    invoice_number: str
    sale_date: datetime
    lines: tuple[SaleInvoiceLine, ...]
    service_charges: tuple[ServiceCharge, ...]
    discount: Decimal
    sub_total: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    status: InvoiceStatus
    patient_ref: str | None = None
    voided_at: datetime | None = None
    void_reason: str | None = None
    id: UUID = field(default_factory=uuid4)

    @property
    def is_voided(self) -> bool:
        return self.voided_at is not None


@dataclass(frozen=True)
class PurchaseRecord:
    """A committed purchase entry with its computed totals."""

    item_id: UUID
    batch_id: UUID
    batch_number: str
    total_purchased_unit: Decimal
    price_per_unit: Decimal
    mrp: Decimal
    selling_price: Decimal
    tax_type: str
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    discount: Decimal
    total_price: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    grand_total: Decimal
    purchase_date: date
    hsn_code: str | None = None
    id: UUID = field(default_factory=uuid4)
