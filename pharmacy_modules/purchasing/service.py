"""
Purchase Entry Service (``pharmacy_modules.purchasing.service``).

Responsibility
--------------
Prices a purchase line (discount, then GST), converts the purchased main
units to sub-units, and creates or tops up the matching batch.  Also
records opening stock for items that were on the shelf before the system
went live.

Invariants
----------
- Pricing and tax validation run before any write; an invalid regime or
  discount leaves stock untouched.
- A new ``(item_id, batch_number)`` creates a batch whose quantity is
  ``to_sub_units(total_purchased_unit, factor)`` and whose selling price
  is the per-main-unit price spread over the sub-units.  An existing batch
  is credited through ``StockLedger``; its price and dates are kept.
- The batch write and the purchase record share one unit of work.

Failure Modes
-------------
- ``ValidationError`` -- malformed line (raised while building the line), or
  a quantity that converts to less than one sub-unit.
- ``InvalidTaxConfigError`` -- rate outside 0-100 or empty state tax.
- ``ItemNotFoundError`` -- unknown item.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pharmacy_config import EngineSettings, get_settings
from pharmacy_engines.pricing import PricingCalculator
from pharmacy_engines.units import UnitConversionService
from pharmacy_kernel.domain.clock import Clock, SystemClock
from pharmacy_kernel.domain.dtos import (
    AdjustType,
    ItemDefinition,
    PurchaseRecord,
    StockAdjustment,
    StockBatch,
)
from pharmacy_kernel.exceptions import ValidationError
from pharmacy_kernel.logging_config import LogContext, get_logger
from pharmacy_kernel.services.stock_ledger import StockLedger
from pharmacy_kernel.stores.base import Catalog, StockStore
from pharmacy_modules.purchasing.models import OpeningStock, PurchaseLine, PurchaseResult

logger = get_logger("modules.purchasing.service")

OPENING_STOCK_REASON = "opening stock"


class PurchaseEntryProcessor:
    """
    Commit purchase entries and opening stock.

    Transaction boundary: writes happen inside ``store.unit_of_work()``;
    the caller commits.
    """

    def __init__(
        self,
        store: StockStore,
        catalog: Catalog,
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

    def process(self, line: PurchaseLine) -> PurchaseResult:
        item = self._catalog.get_item(line.item_id)

        total_price = self._pricing.line_total(line.price_per_unit, line.total_purchased_unit)
        pricing = self._pricing.quote(
            line_totals=[total_price],
            discount_percent=line.discount,
            regime=line.tax,
        )
        sub_units = self._require_sub_units(
            self._units.to_sub_units(line.total_purchased_unit, item.total_quantity_in_a_unit)
        )
        purchase_date = line.purchase_date or self._clock.now().date()

        with self._store.unit_of_work():
            batch, created = self._receive(
                item,
                line.batch_number,
                sub_units,
                new_batch=lambda: StockBatch(
                    item_id=item.id,
                    batch_number=line.batch_number,
                    total_quantity=sub_units,
                    selling_price=self._units.price_per_sub_unit(
                        line.selling_price, item.total_quantity_in_a_unit
                    ),
                    manufacturing_date=line.manufacturing_date,
                    expiry_date=line.expiry_date,
                    purchase_date=purchase_date,
                ),
            )
            record = PurchaseRecord(
                item_id=item.id,
                batch_id=batch.id,
                batch_number=batch.batch_number,
                total_purchased_unit=line.total_purchased_unit,
                price_per_unit=line.price_per_unit,
                mrp=line.mrp,
                selling_price=line.selling_price,
                tax_type=line.tax_type,
                cgst=line.cgst,
                sgst=line.sgst,
                igst=line.igst,
                discount=line.discount,
                total_price=pricing.sub_total,
                discount_amount=pricing.discount_amount,
                taxable_amount=pricing.taxable_amount,
                tax_amount=pricing.tax_amount,
                grand_total=pricing.grand_total,
                purchase_date=purchase_date,
                hsn_code=line.hsn_code,
            )
            self._store.save_purchase(record)

        with LogContext.bind(batch_id=str(batch.id)):
            logger.info(
                "purchase_entry_committed",
                extra={
                    "item_id": str(item.id),
                    "batch_number": batch.batch_number,
                    "sub_units": str(sub_units),
                    "batch_created": created,
                    "tax_type": line.tax_type,
                    "grand_total": str(pricing.grand_total),
                },
            )

        return PurchaseResult(
            total_price=pricing.sub_total,
            taxable_amount=pricing.taxable_amount,
            grand_total=pricing.grand_total,
            batch=batch,
            created=created,
            pricing=pricing,
            record=record,
        )

    def open_stock(
        self,
        entry: OpeningStock,
        adjustment_date: datetime | None = None,
    ) -> StockBatch:
        """
        Record opening stock: create or top up the batch, no pricing stage.

        The receipt is written to the adjustment audit log as an ``add``.
        """
        item = self._catalog.get_item(entry.item_id)
        sub_units = self._require_sub_units(
            self._units.to_sub_units(entry.main_units, item.total_quantity_in_a_unit)
        )

        with self._store.unit_of_work():
            batch, created = self._receive(
                item,
                entry.batch_number,
                sub_units,
                new_batch=lambda: StockBatch(
                    item_id=item.id,
                    batch_number=entry.batch_number,
                    total_quantity=sub_units,
                    selling_price=self._units.price_per_sub_unit(
                        entry.selling_price, item.total_quantity_in_a_unit
                    ),
                    manufacturing_date=entry.manufacturing_date,
                    expiry_date=entry.expiry_date,
                ),
            )
            self._store.append_adjustment(
                StockAdjustment(
                    item_id=item.id,
                    batch_id=batch.id,
                    batch_number=batch.batch_number,
                    adjustment_date=adjustment_date or self._clock.now(),
                    total_quantity=sub_units,
                    adjust_type=AdjustType.ADD,
                    reason=OPENING_STOCK_REASON,
                )
            )

        logger.info(
            "opening_stock_recorded",
            extra={
                "item_id": str(item.id),
                "batch_id": str(batch.id),
                "sub_units": str(sub_units),
                "batch_created": created,
            },
        )
        return batch

    @staticmethod
    def _require_sub_units(sub_units: Decimal) -> Decimal:
        if sub_units < 1:
            raise ValidationError("total_quantity", sub_units, "must be at least 1 sub-unit")
        return sub_units

    def _receive(self, item: ItemDefinition, batch_number: str, sub_units, new_batch):
        existing = self._store.find_batch_by_number(item.id, batch_number)
        if existing is not None:
            self._ledger.credit(existing.id, sub_units)
            return self._store.find_batch(existing.id), False
        return self._store.add_batch(new_batch()), True
