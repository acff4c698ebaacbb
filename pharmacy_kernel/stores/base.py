"""
Store contracts -- the persistence and catalog collaborators of the engine.

Responsibility:
    Declares, as Protocols, what the stock engine needs from the host
    application's persistence layer and item catalog.  Two implementations
    ship with the kernel: ``SqlStockStore`` (SQLAlchemy) and
    ``InMemoryStockStore`` (thread-safe, for embedding and tests).

Architecture position:
    Kernel > Stores.  Imports only domain DTOs and exceptions.

Invariants enforced (by every implementation):
    - ``compare_and_set_quantity`` writes only if the stored version still
      equals ``expected_version`` and then increments the version.  It is the
      ONLY way a batch quantity changes after creation.
    - ``unit_of_work`` applies every write inside it together or none of
      them.
    - Stock adjustments and invoice lines are append-only.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from decimal import Decimal
from typing import Protocol, Sequence, runtime_checkable
from uuid import UUID

from pharmacy_kernel.domain.dtos import (
    ItemDefinition,
    PurchaseRecord,
    SaleInvoice,
    StockAdjustment,
    StockBatch,
)


@runtime_checkable
class Catalog(Protocol):
    """Read-only item catalog."""

    def get_item(self, item_id: UUID) -> ItemDefinition:
        """Return the item or raise ItemNotFoundError."""
        ...


@runtime_checkable
class StockStore(Protocol):
    """Persistence collaborator for batches, invoices, adjustments, purchases."""

    def find_batch(self, batch_id: UUID) -> StockBatch:
        """Fresh read of a batch (never a cached copy); BatchNotFoundError if absent."""
        ...

    def find_batch_by_number(self, item_id: UUID, batch_number: str) -> StockBatch | None:
        ...

    def list_batches(self, item_id: UUID | None = None) -> Sequence[StockBatch]:
        ...

    def add_batch(self, batch: StockBatch) -> StockBatch:
        ...

    def compare_and_set_quantity(
        self,
        batch_id: UUID,
        expected_version: int,
        new_quantity: Decimal,
    ) -> bool:
        """Conditional write; True if applied, False if the version moved."""
        ...

    def save_invoice(self, invoice: SaleInvoice) -> SaleInvoice:
        ...

    def get_invoice(self, invoice_id: UUID) -> SaleInvoice:
        ...

    def mark_invoice_voided(self, invoice: SaleInvoice) -> SaleInvoice:
        """Persist the void fields of an already-saved invoice."""
        ...

    def append_adjustment(self, record: StockAdjustment) -> StockAdjustment:
        ...

    def list_adjustments(self, batch_id: UUID | None = None) -> Sequence[StockAdjustment]:
        ...

    def save_purchase(self, record: PurchaseRecord) -> PurchaseRecord:
        ...

    def next_sequence(self, name: str) -> int:
        ...

    def unit_of_work(self) -> AbstractContextManager[None]:
        ...
