"""
Inventory Service (``pharmacy_modules.inventory.service``).

Responsibility
--------------
Manual stock adjustments (add / reduce) with an append-only audit trail,
and read-only availability queries used to populate the sale form.

Invariants
----------
- An adjustment changes the batch through ``StockLedger`` and appends its
  audit record in the same unit of work: there is never a ledger change
  without its record, or a record without its change.
- The audit record carries the literal sub-unit amount requested, not the
  resulting balance.
- Only batches with at least one whole main unit are sellable.

Failure Modes
-------------
- ``InsufficientStockError`` -- a reduce exceeds the remaining quantity.
- ``ValidationError`` -- quantity not > 0 or unknown adjust type.
- ``BatchNotFoundError`` -- unknown batch.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pharmacy_config import EngineSettings, get_settings
from pharmacy_engines.units import UnitConversionService
from pharmacy_kernel.domain.clock import Clock, SystemClock
from pharmacy_kernel.domain.dtos import AdjustType, StockAdjustment
from pharmacy_kernel.domain.parsing import parse_positive
from pharmacy_kernel.exceptions import ValidationError
from pharmacy_kernel.logging_config import LogContext, get_logger
from pharmacy_kernel.services.stock_ledger import StockLedger
from pharmacy_kernel.stores.base import Catalog, StockStore
from pharmacy_modules.inventory.models import AdjustmentResult, BatchAvailability

logger = get_logger("modules.inventory.service")


def _parse_adjust_type(value: Any) -> AdjustType:
    try:
        return AdjustType(value)
    except ValueError:
        raise ValidationError(
            "adjust_type", value, f"must be one of {[t.value for t in AdjustType]}"
        ) from None


class StockAdjustmentService:
    """Apply manual add/reduce adjustments to a batch."""

    def __init__(
        self,
        store: StockStore,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._ledger = StockLedger(store, settings or get_settings())

    def apply(
        self,
        batch_id: UUID,
        sub_units: Any,
        adjust_type: Any,
        reason: str | None = None,
    ) -> AdjustmentResult:
        """
        Add or reduce ``sub_units`` and append the audit record.

        ``add`` has no upper bound; ``reduce`` fails with
        InsufficientStockError when it exceeds the remaining quantity.
        """
        kind = _parse_adjust_type(adjust_type)
        amount = parse_positive(sub_units, "sub_units")

        with self._store.unit_of_work():
            batch = self._store.find_batch(batch_id)
            if kind is AdjustType.REDUCE:
                new_remaining = self._ledger.deduct(batch_id, amount)
            else:
                new_remaining = self._ledger.credit(batch_id, amount)

            record = StockAdjustment(
                item_id=batch.item_id,
                batch_id=batch.id,
                batch_number=batch.batch_number,
                adjustment_date=self._clock.now(),
                total_quantity=amount,
                adjust_type=kind,
                reason=reason,
            )
            self._store.append_adjustment(record)

        with LogContext.bind(batch_id=str(batch_id)):
            logger.info(
                "stock_adjusted",
                extra={
                    "adjust_type": kind.value,
                    "sub_units": str(amount),
                    "new_remaining": str(new_remaining),
                    "adjustment_id": str(record.id),
                },
            )
        return AdjustmentResult(new_remaining=new_remaining, audit_record=record)

    def history(self, batch_id: UUID) -> list[StockAdjustment]:
        """Audit records of the batch in insertion order."""
        return list(self._store.list_adjustments(batch_id))


class InventoryQuery:
    """Read-only stock availability."""

    def __init__(self, store: StockStore, catalog: Catalog):
        self._store = store
        self._catalog = catalog
        self._units = UnitConversionService()

    def max_sellable_units(self, batch_id: UUID) -> int:
        """Whole main units that can still be sold from the batch."""
        batch = self._store.find_batch(batch_id)
        item = self._catalog.get_item(batch.item_id)
        return self._units.whole_main_units(batch.total_quantity, item.total_quantity_in_a_unit)

    def sellable_batches(self, search: str | None = None) -> list[BatchAvailability]:
        """
        Batches with at least one whole main unit left.

        Sorted by item name, then batch number (both case-insensitive).
        ``search`` filters on a case-insensitive item-name substring.
        """
        needle = search.strip().casefold() if search else ""
        result: list[BatchAvailability] = []

        for batch in self._store.list_batches():
            item = self._catalog.get_item(batch.item_id)
            if needle and needle not in item.name.casefold():
                continue
            whole = self._units.whole_main_units(
                batch.total_quantity, item.total_quantity_in_a_unit
            )
            if whole <= 0:
                continue
            result.append(
                BatchAvailability(
                    batch_id=batch.id,
                    item_id=item.id,
                    item_name=item.name,
                    batch_number=batch.batch_number,
                    unit_type=item.unit_type,
                    total_quantity_in_a_unit=item.total_quantity_in_a_unit,
                    remaining_sub_units=batch.total_quantity,
                    available_main_units=whole,
                    selling_price=batch.selling_price,
                    expiry_date=batch.expiry_date,
                )
            )

        result.sort(key=lambda b: (b.item_name.casefold(), b.batch_number.casefold()))
        return result
