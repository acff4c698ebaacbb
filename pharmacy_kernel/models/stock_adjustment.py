"""
Module: pharmacy_kernel.models.stock_adjustment
Responsibility: ORM persistence for the stock adjustment audit log.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - Append-only.  UPDATE and DELETE are rejected by ORM listeners
      (db/immutability.py).
    - total_quantity > 0 and stores the literal requested amount.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_kernel.db.base import Base, UUIDString
from pharmacy_kernel.domain.dtos import AdjustType, StockAdjustment


class StockAdjustmentModel(Base):
    """Immutable audit row for one manual stock add/reduce."""

    __tablename__ = "stock_adjustments"

    __table_args__ = (
        CheckConstraint("total_quantity > 0", name="ck_stock_adjustment_positive"),
        Index("idx_stock_adjustment_batch", "batch_id"),
        Index("idx_stock_adjustment_date", "adjustment_date"),
    )

    # Insertion order of the audit log
    seq: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)

    item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    batch_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    batch_number: Mapped[str] = mapped_column(String(100), nullable=False)

    adjustment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    total_quantity: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # AdjustType stored as string
    adjust_type: Mapped[str] = mapped_column(String(10), nullable=False)

    reason: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    def to_dto(self) -> StockAdjustment:
        return StockAdjustment(
            id=self.id,
            item_id=self.item_id,
            batch_id=self.batch_id,
            batch_number=self.batch_number,
            adjustment_date=self.adjustment_date,
            total_quantity=Decimal(self.total_quantity),
            adjust_type=AdjustType(self.adjust_type),
            reason=self.reason,
        )

    @classmethod
    def from_dto(cls, record: StockAdjustment, seq: int) -> StockAdjustmentModel:
        return cls(
            id=record.id,
            seq=seq,
            item_id=record.item_id,
            batch_id=record.batch_id,
            batch_number=record.batch_number,
            adjustment_date=record.adjustment_date,
            total_quantity=record.total_quantity,
            adjust_type=record.adjust_type.value,
            reason=record.reason,
        )
