"""
Module: pharmacy_kernel.models.stock_batch
Responsibility: ORM persistence for stock batches.  One row per
    (item, batch number) holding the remaining quantity in sub-units and the
    per-sub-unit selling price.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - (item_id, batch_number) is unique.
    - total_quantity >= 0 (CHECK constraint; the ledger never writes below 0).
    - version is the optimistic-concurrency token.  Every quantity write is
      ``UPDATE ... SET version = version + 1 WHERE id = :id AND
      version = :expected`` (see stores/sql.py).  Rows are never deleted;
      an exhausted batch stays as history with quantity 0.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_kernel.db.base import TrackedBase, UUIDString
from pharmacy_kernel.domain.dtos import StockBatch


class StockBatchModel(TrackedBase):
    """Persistent stock batch with a version column for conditional updates."""

    __tablename__ = "stock_batches"

    __table_args__ = (
        UniqueConstraint("item_id", "batch_number", name="uq_stock_batch_item_number"),
        CheckConstraint("total_quantity >= 0", name="ck_stock_batch_non_negative"),
        Index("idx_stock_batch_item", "item_id"),
        Index("idx_stock_batch_expiry", "expiry_date"),
    )

    item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    batch_number: Mapped[str] = mapped_column(String(100), nullable=False)

    # Remaining quantity in sub-units
    total_quantity: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # Price per sub-unit
    selling_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    manufacturing_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_dto(self) -> StockBatch:
        return StockBatch(
            id=self.id,
            item_id=self.item_id,
            batch_number=self.batch_number,
            total_quantity=Decimal(self.total_quantity),
            selling_price=Decimal(self.selling_price),
            manufacturing_date=self.manufacturing_date,
            expiry_date=self.expiry_date,
            purchase_date=self.purchase_date,
            version=self.version,
        )

    @classmethod
    def from_dto(cls, batch: StockBatch) -> StockBatchModel:
        return cls(
            id=batch.id,
            item_id=batch.item_id,
            batch_number=batch.batch_number,
            total_quantity=batch.total_quantity,
            selling_price=batch.selling_price,
            manufacturing_date=batch.manufacturing_date,
            expiry_date=batch.expiry_date,
            purchase_date=batch.purchase_date,
            version=batch.version,
        )
