"""
Typed Exception Hierarchy for the Pharmacy Stock Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (REST handlers, background jobs, the sale screen) must react to
engine failures precisely: an oversold batch is shown next to the offending
invoice line, a lost optimistic-lock race is resubmitted, a bad tax setup is
shown on the purchase form.  Parsing message strings for that is fragile.

Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (batch ids, requested vs. available, ...)

Example::

    try:
        builder.build(lines, discount_percent=10, paid_amount=500)
    except InsufficientStockError as e:
        for shortfall in e.shortfalls:
            mark_line(shortfall.line_index, shortfall.available)
    except ConcurrencyConflictError as e:
        resubmit_later(e.batch_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PharmacyEngineError (base)
    |
    +-- ValidationError
    |   +-- InvalidFactorError
    |   +-- InvalidQuantityError
    |
    +-- InvalidTaxConfigError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- ConcurrencyError
    |   +-- ConcurrencyConflictError
    |
    +-- NotFoundError
    |   +-- ItemNotFoundError
    |   +-- BatchNotFoundError
    |   +-- InvoiceNotFoundError
    |
    +-- InvoiceError
    |   +-- InvoiceAlreadyVoidedError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                    | When Raised
--------------|-------------------------|-------------------------------------------
Validation    | VALIDATION_ERROR        | Malformed input (non-numeric, out of range)
              | INVALID_FACTOR          | Sub-units per main unit < 1
              | INVALID_QUANTITY        | Negative quantity
--------------|-------------------------|-------------------------------------------
Tax           | INVALID_TAX_CONFIG      | Rate outside 0-100, or empty state regime
--------------|-------------------------|-------------------------------------------
Stock         | INSUFFICIENT_STOCK      | Request exceeds a batch's remaining units
--------------|-------------------------|-------------------------------------------
Concurrency   | CONCURRENCY_CONFLICT    | Conditional-update retries exhausted
--------------|-------------------------|-------------------------------------------
Not found     | ITEM_NOT_FOUND          | Catalog item id unknown
              | BATCH_NOT_FOUND         | Stock batch id unknown
              | INVOICE_NOT_FOUND       | Sale invoice id unknown
--------------|-------------------------|-------------------------------------------
Invoice       | INVOICE_ALREADY_VOIDED  | Void requested twice
--------------|-------------------------|-------------------------------------------
Immutability  | IMMUTABILITY_VIOLATION  | Update/delete of an append-only record

===============================================================================
PROPAGATION
===============================================================================

ValidationError and InvalidTaxConfigError are deterministic and raised
before any mutation.  InsufficientStockError detected before commit blocks
the whole operation.  ConcurrencyConflictError is raised only after the
ledger's bounded retries are used up; the caller is expected to resubmit.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Sequence


class PharmacyEngineError(Exception):
    """
    Base exception for all stock and pricing engine errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "PHARMACY_ENGINE_ERROR"


# Validation


class ValidationError(PharmacyEngineError):
    """Malformed input rejected at the numeric parsing boundary."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


class InvalidFactorError(ValidationError):
    """Sub-units per main unit must be at least 1."""

    code: str = "INVALID_FACTOR"

    def __init__(self, factor: Any):
        super().__init__("total_quantity_in_a_unit", factor, "must be >= 1")


class InvalidQuantityError(ValidationError):
    """Quantity must not be negative."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, field: str, value: Any, reason: str = "must be >= 0"):
        super().__init__(field, value, reason)


# Tax


class InvalidTaxConfigError(PharmacyEngineError):
    """Tax regime and supplied rates are inconsistent."""

    code: str = "INVALID_TAX_CONFIG"

    def __init__(self, kind: str, reason: str):
        self.kind = kind
        self.reason = reason
        super().__init__(f"Invalid tax configuration for {kind}: {reason}")


# Stock


@dataclass(frozen=True)
class StockShortfall:
    """One batch that cannot cover its requested sub-units."""

    batch_id: Any
    requested: Decimal
    available: Decimal
    line_index: int | None = None


class StockError(PharmacyEngineError):
    """Base exception for stock ledger errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """
    Requested sub-units exceed remaining stock on one or more batches.

    ``shortfalls`` lists every violating batch so the caller can flag all
    offending lines at once.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, shortfalls: Sequence[StockShortfall]):
        self.shortfalls = tuple(shortfalls)
        details = ", ".join(
            f"batch {s.batch_id}: requested {s.requested}, available {s.available}"
            for s in self.shortfalls
        )
        super().__init__(f"Insufficient stock ({details})")

    @property
    def batch_ids(self) -> tuple:
        return tuple(s.batch_id for s in self.shortfalls)


# Concurrency


class ConcurrencyError(PharmacyEngineError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrencyConflictError(ConcurrencyError):
    """Conditional update on a batch kept losing the race."""

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, batch_id: Any, attempts: int):
        self.batch_id = batch_id
        self.attempts = attempts
        super().__init__(
            f"Stock batch {batch_id} was modified concurrently; "
            f"gave up after {attempts} attempts"
        )


# Lookups


class NotFoundError(PharmacyEngineError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class ItemNotFoundError(NotFoundError):
    """Catalog item with given ID was not found."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: Any):
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


class BatchNotFoundError(NotFoundError):
    """Stock batch with given ID was not found."""

    code: str = "BATCH_NOT_FOUND"

    def __init__(self, batch_id: Any):
        self.batch_id = batch_id
        super().__init__(f"Stock batch not found: {batch_id}")


class InvoiceNotFoundError(NotFoundError):
    """Sale invoice with given ID was not found."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: Any):
        self.invoice_id = invoice_id
        super().__init__(f"Sale invoice not found: {invoice_id}")


# Invoices


class InvoiceError(PharmacyEngineError):
    """Base exception for invoice lifecycle errors."""

    code: str = "INVOICE_ERROR"


class InvoiceAlreadyVoidedError(InvoiceError):
    """Invoice was already voided; stock was already returned."""

    code: str = "INVOICE_ALREADY_VOIDED"

    def __init__(self, invoice_id: Any):
        self.invoice_id = invoice_id
        super().__init__(f"Sale invoice {invoice_id} is already voided")


# Immutability


class ImmutabilityError(PharmacyEngineError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    Stock adjustment audit rows and committed invoice lines are never
    edited or deleted.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
