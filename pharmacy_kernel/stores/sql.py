"""
SqlStockStore -- SQLAlchemy implementation of the store and catalog.

Responsibility:
    Persists batches, invoices, adjustments and purchases through a caller
    supplied ``Session``.  Never commits: the caller owns the transaction
    boundary (see ``pharmacy_kernel.db.engine.session_scope``).

Architecture position:
    Kernel > Stores.  Imports models, the sequence service, domain DTOs and
    exceptions.

Invariants enforced:
    - Every quantity write is a single conditional statement::

          UPDATE stock_batches
             SET total_quantity = :q, version = version + 1
           WHERE id = :id AND version = :v

      and succeeds only if exactly one row matched.  Correctness therefore
      does not depend on the isolation level.
    - ``find_batch`` always re-reads the row (populate_existing); the
      identity map is never trusted for quantities.
    - ``unit_of_work`` is a SAVEPOINT: a failure rolls back every write made
      inside it while leaving the caller's outer transaction usable.

Failure modes:
    - BatchNotFoundError / InvoiceNotFoundError / ItemNotFoundError for
      unknown ids.
    - ValidationError when a batch number already exists for the item.
    - InvoiceAlreadyVoidedError on a second void.
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

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
from pharmacy_kernel.models.item import CatalogItemModel
from pharmacy_kernel.models.purchase_entry import PurchaseEntryModel
from pharmacy_kernel.models.sale_invoice import SaleInvoiceModel
from pharmacy_kernel.models.stock_adjustment import StockAdjustmentModel
from pharmacy_kernel.models.stock_batch import StockBatchModel
from pharmacy_kernel.services.sequence_service import SequenceService

logger = get_logger("stores.sql")

ADJUSTMENT_SEQUENCE = "stock_adjustment"


class SqlStockStore:
    """Store backed by a SQLAlchemy session."""

    def __init__(self, session: Session):
        self._session = session
        self._sequences = SequenceService(session)

    @property
    def session(self) -> Session:
        return self._session

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        with self._session.begin_nested():
            yield

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def add_item(self, item: ItemDefinition) -> ItemDefinition:
        self._session.add(CatalogItemModel.from_dto(item))
        self._session.flush()
        return item

    def get_item(self, item_id: UUID) -> ItemDefinition:
        model = self._session.get(CatalogItemModel, item_id)
        if model is None:
            raise ItemNotFoundError(str(item_id))
        return model.to_dto()

    def list_items(self) -> list[ItemDefinition]:
        rows = self._session.execute(
            select(CatalogItemModel).order_by(CatalogItemModel.name)
        ).scalars()
        return [row.to_dto() for row in rows]

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def find_batch(self, batch_id: UUID) -> StockBatch:
        model = self._session.execute(
            select(StockBatchModel)
            .where(StockBatchModel.id == batch_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise BatchNotFoundError(str(batch_id))
        return model.to_dto()

    def find_batch_by_number(self, item_id: UUID, batch_number: str) -> StockBatch | None:
        model = self._session.execute(
            select(StockBatchModel)
            .where(
                StockBatchModel.item_id == item_id,
                StockBatchModel.batch_number == batch_number,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def list_batches(self, item_id: UUID | None = None) -> Sequence[StockBatch]:
        stmt = select(StockBatchModel).execution_options(populate_existing=True)
        if item_id is not None:
            stmt = stmt.where(StockBatchModel.item_id == item_id)
        rows = self._session.execute(stmt.order_by(StockBatchModel.batch_number)).scalars()
        return [row.to_dto() for row in rows]

    def add_batch(self, batch: StockBatch) -> StockBatch:
        try:
            with self._session.begin_nested():
                self._session.add(StockBatchModel.from_dto(batch))
                self._session.flush()
        except IntegrityError as exc:
            logger.warning(
                "batch_insert_rejected",
                extra={"item_id": str(batch.item_id), "batch_number": batch.batch_number},
            )
            raise ValidationError(
                "batch_number", batch.batch_number, "already exists for item"
            ) from exc
        return batch

    def compare_and_set_quantity(
        self,
        batch_id: UUID,
        expected_version: int,
        new_quantity: Decimal,
    ) -> bool:
        result = self._session.execute(
            update(StockBatchModel)
            .where(
                StockBatchModel.id == batch_id,
                StockBatchModel.version == expected_version,
            )
            .values(
                total_quantity=new_quantity,
                version=StockBatchModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def save_invoice(self, invoice: SaleInvoice) -> SaleInvoice:
        self._session.add(SaleInvoiceModel.from_dto(invoice))
        self._session.flush()
        return invoice

    def _invoice_model(self, invoice_id: UUID) -> SaleInvoiceModel:
        model = self._session.get(SaleInvoiceModel, invoice_id)
        if model is None:
            raise InvoiceNotFoundError(str(invoice_id))
        return model

    def get_invoice(self, invoice_id: UUID) -> SaleInvoice:
        return self._invoice_model(invoice_id).to_dto()

    def list_invoices(self) -> list[SaleInvoice]:
        rows = self._session.execute(
            select(SaleInvoiceModel).order_by(SaleInvoiceModel.invoice_number)
        ).scalars()
        return [row.to_dto() for row in rows]

    def mark_invoice_voided(self, invoice: SaleInvoice) -> SaleInvoice:
        model = self._invoice_model(invoice.id)
        if model.voided_at is not None:
            raise InvoiceAlreadyVoidedError(str(invoice.id))
        model.voided_at = invoice.voided_at
        model.void_reason = invoice.void_reason
        self._session.flush()
        return invoice

    # ------------------------------------------------------------------
    # Adjustments and purchases
    # ------------------------------------------------------------------

    def append_adjustment(self, record: StockAdjustment) -> StockAdjustment:
        seq = self._sequences.next_value(ADJUSTMENT_SEQUENCE)
        self._session.add(StockAdjustmentModel.from_dto(record, seq))
        self._session.flush()
        return record

    def list_adjustments(self, batch_id: UUID | None = None) -> Sequence[StockAdjustment]:
        stmt = select(StockAdjustmentModel)
        if batch_id is not None:
            stmt = stmt.where(StockAdjustmentModel.batch_id == batch_id)
        rows = self._session.execute(stmt.order_by(StockAdjustmentModel.seq)).scalars()
        return [row.to_dto() for row in rows]

    def save_purchase(self, record: PurchaseRecord) -> PurchaseRecord:
        self._session.add(PurchaseEntryModel.from_dto(record))
        self._session.flush()
        return record

    def list_purchases(self) -> list[PurchaseRecord]:
        rows = self._session.execute(
            select(PurchaseEntryModel).order_by(PurchaseEntryModel.purchase_date)
        ).scalars()
        return [row.to_dto() for row in rows]

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    def next_sequence(self, name: str) -> int:
        return self._sequences.next_value(name)
