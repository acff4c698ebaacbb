"""
Sale Invoice Service (``pharmacy_modules.sales.service``).

Responsibility
--------------
Validates, prices, and commits multi-line sales, and reverses them.
Composes ``UnitConversionService`` (main units to sub-units),
``PricingCalculator`` (no tax stage for sales) and ``StockLedger``.

Invariants
----------
- Every line is checked against its batch before anything is written, and
  all failing lines are reported together in one ``InsufficientStockError``.
- The deductions of every line and the invoice row are written inside one
  ``store.unit_of_work()``: either all of them persist or none does.  A
  race lost after validation surfaces as ``InsufficientStockError`` (or
  ``ConcurrencyConflictError``) with no stock change.
- A voided invoice has all its stock credited back exactly once.

Failure Modes
-------------
- ``ValidationError`` -- empty invoice, malformed numbers, discount outside
  0-100.
- ``InsufficientStockError`` -- one or more lines exceed remaining stock.
- ``BatchNotFoundError`` / ``InvoiceNotFoundError`` -- unknown ids.
- ``InvoiceAlreadyVoidedError`` -- second void of the same invoice.

Usage::

    builder = SaleInvoiceBuilder(store, catalog=store, clock=clock)
    line = builder.line_for(batch_id, total_unit=Decimal("2"))
    result = builder.build([line], discount_percent=Decimal("10"),
                           paid_amount=Decimal("500"))
    result.status   # InvoiceStatus.PENDING
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
from decimal import Decimal
from typing import Any, Sequence
from uuid import UUID

from pharmacy_config import EngineSettings, get_settings
from pharmacy_engines.pricing import PricingCalculator
from pharmacy_engines.tax import NO_TAX
from pharmacy_engines.units import UnitConversionService
from pharmacy_kernel.db.types import ZERO, round_money
from pharmacy_kernel.domain.clock import Clock, SystemClock
from pharmacy_kernel.domain.dtos import (
    InvoiceStatus,
    SaleInvoice,
    SaleInvoiceLine,
    ServiceCharge,
)
from pharmacy_kernel.domain.parsing import parse_decimal
from pharmacy_kernel.exceptions import (
    InsufficientStockError,
    InvoiceAlreadyVoidedError,
    StockShortfall,
    ValidationError,
)
from pharmacy_kernel.logging_config import LogContext, get_logger
from pharmacy_kernel.services.stock_ledger import StockLedger
from pharmacy_kernel.stores.base import Catalog, StockStore
from pharmacy_modules.sales.models import SaleLine, SaleQuote, SaleResult

logger = get_logger("modules.sales.service")

SALE_INVOICE_SEQUENCE = "sale_invoice"


class SaleInvoiceBuilder:
    """
    Quote, commit and void sale invoices.

    Transaction boundary: writes happen inside ``store.unit_of_work()``;
    committing the surrounding database transaction is the caller's job.
    """

    def __init__(
        self,
        store: StockStore,
        catalog: Catalog | None = None,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
    ):
        self._store = store
        self._catalog = catalog
        self._settings = settings or get_settings()
        self._clock = clock or SystemClock()
        self._units = UnitConversionService()
        self._pricing = PricingCalculator(settings=self._settings)
        self._ledger = StockLedger(store, self._settings)

    def line_for(self, batch_id: UUID, total_unit: Any) -> SaleLine:
        """Build a line from the batch's current price and the item's factor."""
        if self._catalog is None:
            raise ValidationError("catalog", None, "a catalog is required to build lines")
        batch = self._store.find_batch(batch_id)
        item = self._catalog.get_item(batch.item_id)
        return SaleLine.for_batch(batch, item, total_unit)

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def quote(
        self,
        lines: Sequence[SaleLine],
        discount_percent: Any = ZERO,
        paid_amount: Any = ZERO,
        service_charges: Sequence[ServiceCharge] = (),
    ) -> SaleQuote:
        """Compute every figure of the sale without touching stock."""
        if not lines and not service_charges:
            raise ValidationError("lines", 0, "invoice has no lines")

        priced_lines = tuple(self._price_line(line) for line in lines)
        charges = tuple(
            ServiceCharge(
                name=charge.name,
                price=self._round(parse_decimal(charge.price, "service_charge")),
            )
            for charge in service_charges
        )

        pricing = self._pricing.quote(
            line_totals=[line.total_price for line in priced_lines]
            + [charge.price for charge in charges],
            discount_percent=discount_percent,
            regime=NO_TAX,
        )

        paid = parse_decimal(paid_amount, "paid_amount")
        remaining = self._round(pricing.grand_total - paid)
        status = InvoiceStatus.PENDING if remaining > ZERO else InvoiceStatus.PAID

        return SaleQuote(
            lines=priced_lines,
            service_charges=charges,
            pricing=pricing,
            paid_amount=paid,
            remaining_amount=remaining,
            status=status,
        )

    def _price_line(self, line: SaleLine) -> SaleInvoiceLine:
        sub_units = self._units.to_sub_units(line.total_unit, line.total_quantity_in_a_unit)
        return SaleInvoiceLine(
            batch_id=line.batch_id,
            item_id=line.item_id,
            selling_unit_type=line.selling_unit_type,
            total_unit=line.total_unit,
            total_quantity_in_a_unit=line.total_quantity_in_a_unit,
            sub_units=sub_units,
            price=line.price,
            total_price=self._pricing.line_total(line.price, sub_units),
        )

    def _round(self, value: Decimal) -> Decimal:
        return round_money(value, self._settings.money_places)

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def check_stock(self, lines: Sequence[SaleInvoiceLine]) -> list[StockShortfall]:
        """
        Every line whose batch cannot cover it.

        Lines on the same batch are checked cumulatively, so two lines that
        fit separately but not together are both considered.
        """
        requested: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        available: dict[UUID, Decimal] = {}
        shortfalls: list[StockShortfall] = []

        for index, line in enumerate(lines):
            if line.batch_id not in available:
                available[line.batch_id] = self._ledger.remaining(line.batch_id)
            requested[line.batch_id] += line.sub_units
            if requested[line.batch_id] > available[line.batch_id]:
                shortfalls.append(
                    StockShortfall(
                        batch_id=line.batch_id,
                        requested=requested[line.batch_id],
                        available=available[line.batch_id],
                        line_index=index,
                    )
                )
        return shortfalls

    def build(
        self,
        lines: Sequence[SaleLine],
        discount_percent: Any = ZERO,
        paid_amount: Any = ZERO,
        service_charges: Sequence[ServiceCharge] = (),
        patient_ref: str | None = None,
    ) -> SaleResult:
        """
        Validate, price, deduct stock, and persist the invoice.

        Raises:
            InsufficientStockError: listing every offending line.
        """
        quote = self.quote(lines, discount_percent, paid_amount, service_charges)

        shortfalls = self.check_stock(quote.lines)
        if shortfalls:
            logger.warning(
                "sale_rejected_insufficient_stock",
                extra={
                    "line_count": len(quote.lines),
                    "shortfall_lines": [s.line_index for s in shortfalls],
                },
            )
            raise InsufficientStockError(shortfalls)

        with self._store.unit_of_work():
            for index, line in enumerate(quote.lines):
                if line.sub_units > ZERO:
                    self._ledger.deduct(line.batch_id, line.sub_units, line_index=index)

            invoice = SaleInvoice(
                invoice_number=self._next_invoice_number(),
                sale_date=self._clock.now(),
                lines=quote.lines,
                service_charges=quote.service_charges,
                discount=quote.pricing.discount_percent,
                sub_total=quote.sub_total,
                discount_amount=quote.discount_amount,
                total_amount=quote.grand_total,
                paid_amount=quote.paid_amount,
                remaining_amount=quote.remaining_amount,
                status=quote.status,
                patient_ref=patient_ref,
            )
            self._store.save_invoice(invoice)

        with LogContext.bind(invoice_id=str(invoice.id)):
            logger.info(
                "sale_invoice_committed",
                extra={
                    "invoice_number": invoice.invoice_number,
                    "line_count": len(invoice.lines),
                    "grand_total": str(invoice.total_amount),
                    "status": invoice.status.value,
                },
            )

        return SaleResult(
            sub_total=quote.sub_total,
            discount_amount=quote.discount_amount,
            grand_total=quote.grand_total,
            remaining_amount=quote.remaining_amount,
            status=quote.status,
            invoice=invoice,
        )

    def _next_invoice_number(self) -> str:
        n = self._store.next_sequence(SALE_INVOICE_SEQUENCE)
        width = self._settings.invoice_number_width
        return f"{self._settings.invoice_number_prefix}-{n:0{width}d}"

    # ------------------------------------------------------------------
    # Reversal
    # ------------------------------------------------------------------

    def void(self, invoice_id: UUID, reason: str | None = None) -> SaleInvoice:
        """
        Credit every line's stock back and mark the invoice voided.

        Raises:
            InvoiceAlreadyVoidedError: the invoice was voided before.
        """
        invoice = self._store.get_invoice(invoice_id)
        if invoice.is_voided:
            raise InvoiceAlreadyVoidedError(str(invoice_id))

        with self._store.unit_of_work():
            for line in invoice.lines:
                if line.sub_units > ZERO:
                    self._ledger.credit(line.batch_id, line.sub_units)
            voided = replace(invoice, voided_at=self._clock.now(), void_reason=reason)
            self._store.mark_invoice_voided(voided)

        with LogContext.bind(invoice_id=str(invoice_id)):
            logger.info(
                "sale_invoice_voided",
                extra={"invoice_number": invoice.invoice_number, "reason": reason},
            )
        return voided
