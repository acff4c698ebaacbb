"""
Module: pharmacy_kernel.models.purchase_entry
Responsibility: ORM persistence for committed purchase entries, including the
    flat tax columns (tax_type, cgst, sgst, igst) the purchase register shows.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - Only the rate columns owned by tax_type are non-zero; the purchasing
      module writes them from a tagged tax regime.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_kernel.db.base import TrackedBase, UUIDString
from pharmacy_kernel.domain.dtos import PurchaseRecord


class PurchaseEntryModel(TrackedBase):
    """One purchase line as committed."""

    __tablename__ = "purchase_entries"

    __table_args__ = (
        Index("idx_purchase_item", "item_id"),
        Index("idx_purchase_batch", "batch_id"),
        Index("idx_purchase_date", "purchase_date"),
    )

    item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    batch_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    batch_number: Mapped[str] = mapped_column(String(100), nullable=False)
    hsn_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    total_purchased_unit: Mapped[Decimal] = mapped_column(Numeric(38, 9))
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(38, 9))
    mrp: Mapped[Decimal] = mapped_column(Numeric(38, 9))
    selling_price: Mapped[Decimal] = mapped_column(Numeric(38, 9))

    tax_type: Mapped[str] = mapped_column(String(10), nullable=False)
    cgst: Mapped[Decimal] = mapped_column(Numeric(9, 4))
    sgst: Mapped[Decimal] = mapped_column(Numeric(9, 4))
    igst: Mapped[Decimal] = mapped_column(Numeric(9, 4))
    discount: Mapped[Decimal] = mapped_column(Numeric(9, 4))

    total_price: Mapped[Decimal] = mapped_column(Numeric(38, 9))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9))
    taxable_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9))
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9))
    grand_total: Mapped[Decimal] = mapped_column(Numeric(38, 9))

    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)

    def to_dto(self) -> PurchaseRecord:
        return PurchaseRecord(
            id=self.id,
            item_id=self.item_id,
            batch_id=self.batch_id,
            batch_number=self.batch_number,
            hsn_code=self.hsn_code,
            total_purchased_unit=Decimal(self.total_purchased_unit),
            price_per_unit=Decimal(self.price_per_unit),
            mrp=Decimal(self.mrp),
            selling_price=Decimal(self.selling_price),
            tax_type=self.tax_type,
            cgst=Decimal(self.cgst),
            sgst=Decimal(self.sgst),
            igst=Decimal(self.igst),
            discount=Decimal(self.discount),
            total_price=Decimal(self.total_price),
            discount_amount=Decimal(self.discount_amount),
            taxable_amount=Decimal(self.taxable_amount),
            tax_amount=Decimal(self.tax_amount),
            grand_total=Decimal(self.grand_total),
            purchase_date=self.purchase_date,
        )

    @classmethod
    def from_dto(cls, record: PurchaseRecord) -> PurchaseEntryModel:
        return cls(
            id=record.id,
            item_id=record.item_id,
            batch_id=record.batch_id,
            batch_number=record.batch_number,
            hsn_code=record.hsn_code,
            total_purchased_unit=record.total_purchased_unit,
            price_per_unit=record.price_per_unit,
            mrp=record.mrp,
            selling_price=record.selling_price,
            tax_type=record.tax_type,
            cgst=record.cgst,
            sgst=record.sgst,
            igst=record.igst,
            discount=record.discount,
            total_price=record.total_price,
            discount_amount=record.discount_amount,
            taxable_amount=record.taxable_amount,
            tax_amount=record.tax_amount,
            grand_total=record.grand_total,
            purchase_date=record.purchase_date,
        )
