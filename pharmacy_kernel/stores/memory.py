"""
InMemoryStockStore -- thread-safe store and catalog for embedding and tests.

Responsibility:
    Implements ``StockStore`` and ``Catalog`` over plain dictionaries.
    Suitable for hosts that persist elsewhere and for deterministic tests
    of the ledger and the sale/purchase/adjustment services.

Architecture position:
    Kernel > Stores.  Imports domain DTOs and exceptions only.

Invariants enforced:
    - ``compare_and_set_quantity`` is atomic with respect to every other
      operation on the store (single re-entrant lock).
    - ``unit_of_work`` holds the lock for its whole duration and keeps an
      undo log; on exception every write made inside it is reverted in
      reverse order before the exception propagates.  Nested units join
      the outermost one.
    - Stored DTOs are frozen, so every read is a consistent snapshot.

Concurrency:
    Holding the store lock across a unit of work serializes invoices
    against each other in this store only.  The undo log restores
    snapshots, which is sound only while no other writer can interleave.
    ``SqlStockStore`` takes no such lock: concurrent invoices meet only
    at the version check on the batches they touch.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Callable, Iterator, Sequence
from uuid import UUID

from pharmacy_kernel.domain.dtos import (
    ItemDefinition,
    PurchaseRecord,
    SaleInvoice,
    StockAdjustment,
    StockBatch,
)
from pharmacy_kernel.exceptions import (
    BatchNotFoundError,
    InvoiceAlreadyVoidedError,
    InvoiceNotFoundError,
    ItemNotFoundError,
    ValidationError,
)
from pharmacy_kernel.logging_config import get_logger

logger = get_logger("stores.memory")


class InMemoryStockStore:
    """Dictionary-backed store with an all-or-nothing unit of work."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._local = threading.local()
        self._items: dict[UUID, ItemDefinition] = {}
        self._batches: dict[UUID, StockBatch] = {}
        self._invoices: dict[UUID, SaleInvoice] = {}
        self._adjustments: list[StockAdjustment] = []
        self._purchases: list[PurchaseRecord] = []
        self._sequences: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        with self._lock:
            if getattr(self._local, "undo", None) is not None:
                yield
                return

            self._local.undo = []
            try:
                yield
            except Exception:
                undo: list[Callable[[], None]] = self._local.undo
                logger.debug("unit_of_work_rolled_back", extra={"writes": len(undo)})
                for action in reversed(undo):
                    action()
                raise
            finally:
                self._local.undo = None

    def _record_undo(self, action: Callable[[], None]) -> None:
        undo = getattr(self._local, "undo", None)
        if undo is not None:
            undo.append(action)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def add_item(self, item: ItemDefinition) -> ItemDefinition:
        with self._lock:
            self._items[item.id] = item
        return item

    def get_item(self, item_id: UUID) -> ItemDefinition:
        with self._lock:
            item = self._items.get(item_id)
        if item is None:
            raise ItemNotFoundError(str(item_id))
        return item

    def list_items(self) -> list[ItemDefinition]:
        with self._lock:
            return list(self._items.values())

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def find_batch(self, batch_id: UUID) -> StockBatch:
        with self._lock:
            batch = self._batches.get(batch_id)
        if batch is None:
            raise BatchNotFoundError(str(batch_id))
        return batch

    def find_batch_by_number(self, item_id: UUID, batch_number: str) -> StockBatch | None:
        with self._lock:
            for batch in self._batches.values():
                if batch.item_id == item_id and batch.batch_number == batch_number:
                    return batch
        return None

    def list_batches(self, item_id: UUID | None = None) -> Sequence[StockBatch]:
        with self._lock:
            return [
                b for b in self._batches.values()
                if item_id is None or b.item_id == item_id
            ]

    def add_batch(self, batch: StockBatch) -> StockBatch:
        with self._lock:
            if self.find_batch_by_number(batch.item_id, batch.batch_number) is not None:
                raise ValidationError(
                    "batch_number", batch.batch_number, "already exists for item"
                )
            self._batches[batch.id] = batch
            self._record_undo(lambda: self._batches.pop(batch.id, None))
        return batch

    def compare_and_set_quantity(
        self,
        batch_id: UUID,
        expected_version: int,
        new_quantity: Decimal,
    ) -> bool:
        with self._lock:
            current = self._batches.get(batch_id)
            if current is None:
                raise BatchNotFoundError(str(batch_id))
            if current.version != expected_version:
                return False
            self._batches[batch_id] = current.with_quantity(new_quantity)
            self._record_undo(lambda: self._batches.__setitem__(batch_id, current))
            return True

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def save_invoice(self, invoice: SaleInvoice) -> SaleInvoice:
        with self._lock:
            self._invoices[invoice.id] = invoice
            self._record_undo(lambda: self._invoices.pop(invoice.id, None))
        return invoice

    def get_invoice(self, invoice_id: UUID) -> SaleInvoice:
        with self._lock:
            invoice = self._invoices.get(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id))
        return invoice

    def list_invoices(self) -> list[SaleInvoice]:
        with self._lock:
            return list(self._invoices.values())

    def mark_invoice_voided(self, invoice: SaleInvoice) -> SaleInvoice:
        with self._lock:
            stored = self.get_invoice(invoice.id)
            if stored.is_voided:
                raise InvoiceAlreadyVoidedError(str(invoice.id))
            self._invoices[invoice.id] = invoice
            self._record_undo(lambda: self._invoices.__setitem__(invoice.id, stored))
        return invoice

    # ------------------------------------------------------------------
    # Adjustments and purchases
    # ------------------------------------------------------------------

    def append_adjustment(self, record: StockAdjustment) -> StockAdjustment:
        with self._lock:
            self._adjustments.append(record)
            self._record_undo(lambda: self._adjustments.remove(record))
        return record

    def list_adjustments(self, batch_id: UUID | None = None) -> Sequence[StockAdjustment]:
        with self._lock:
            return [
                a for a in self._adjustments
                if batch_id is None or a.batch_id == batch_id
            ]

    def save_purchase(self, record: PurchaseRecord) -> PurchaseRecord:
        with self._lock:
            self._purchases.append(record)
            self._record_undo(lambda: self._purchases.remove(record))
        return record

    def list_purchases(self) -> list[PurchaseRecord]:
        with self._lock:
            return list(self._purchases)

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    def next_sequence(self, name: str) -> int:
        with self._lock:
            previous = self._sequences.get(name, 0)
            self._sequences[name] = previous + 1
            self._record_undo(lambda: self._sequences.__setitem__(name, previous))
            return previous + 1
