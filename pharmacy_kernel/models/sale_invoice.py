"""
Module: pharmacy_kernel.models.sale_invoice
Responsibility: ORM persistence for committed sale invoices, their stock
    lines, and their non-stock service charges.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - invoice_number is unique.
    - Lines and service charges are immutable after insert (db/immutability.py).
    - On the invoice header only voided_at / void_reason may change, once.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pharmacy_kernel.db.base import Base, TrackedBase, UUIDString
from pharmacy_kernel.domain.dtos import (
    InvoiceStatus,
    SaleInvoice,
    SaleInvoiceLine,
    ServiceCharge,
)


class SaleInvoiceModel(TrackedBase):
    """Header row of a committed sale invoice."""

    __tablename__ = "sale_invoices"

    __table_args__ = (
        Index("idx_sale_invoice_date", "sale_date"),
        Index("idx_sale_invoice_status", "status"),
    )

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    sale_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    patient_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)

    discount: Mapped[Decimal] = mapped_column(Numeric(9, 4), nullable=False)
    sub_total: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    remaining_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # InvoiceStatus stored as string
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    voided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    void_reason: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    lines: Mapped[list[SaleInvoiceLineModel]] = relationship(
        back_populates="invoice",
        order_by="SaleInvoiceLineModel.position",
        cascade="save-update, merge",
    )
    service_charges: Mapped[list[SaleServiceChargeModel]] = relationship(
        back_populates="invoice",
        order_by="SaleServiceChargeModel.position",
        cascade="save-update, merge",
    )

    def to_dto(self) -> SaleInvoice:
        return SaleInvoice(
            id=self.id,
            invoice_number=self.invoice_number,
            sale_date=self.sale_date,
            patient_ref=self.patient_ref,
            lines=tuple(line.to_dto() for line in self.lines),
            service_charges=tuple(c.to_dto() for c in self.service_charges),
            discount=Decimal(self.discount),
            sub_total=Decimal(self.sub_total),
            discount_amount=Decimal(self.discount_amount),
            total_amount=Decimal(self.total_amount),
            paid_amount=Decimal(self.paid_amount),
            remaining_amount=Decimal(self.remaining_amount),
            status=InvoiceStatus(self.status),
            voided_at=self.voided_at,
            void_reason=self.void_reason,
        )

    @classmethod
    def from_dto(cls, invoice: SaleInvoice) -> SaleInvoiceModel:
        model = cls(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            sale_date=invoice.sale_date,
            patient_ref=invoice.patient_ref,
            discount=invoice.discount,
            sub_total=invoice.sub_total,
            discount_amount=invoice.discount_amount,
            total_amount=invoice.total_amount,
            paid_amount=invoice.paid_amount,
            remaining_amount=invoice.remaining_amount,
            status=invoice.status.value,
            voided_at=invoice.voided_at,
            void_reason=invoice.void_reason,
        )
        model.lines = [
            SaleInvoiceLineModel.from_dto(line, position)
            for position, line in enumerate(invoice.lines)
        ]
        model.service_charges = [
            SaleServiceChargeModel(name=c.name, price=c.price, position=position)
            for position, c in enumerate(invoice.service_charges)
        ]
        return model


class SaleInvoiceLineModel(Base):
    """One stock line of a committed invoice."""

    __tablename__ = "sale_invoice_lines"

    __table_args__ = (
        Index("idx_sale_line_invoice", "invoice_id"),
        Index("idx_sale_line_batch", "batch_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("sale_invoices.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    batch_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    selling_unit_type: Mapped[str] = mapped_column(String(50), nullable=False)
    total_unit: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    total_quantity_in_a_unit: Mapped[int] = mapped_column(Integer, nullable=False)
    sub_units: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    invoice: Mapped[SaleInvoiceModel] = relationship(back_populates="lines")

    def to_dto(self) -> SaleInvoiceLine:
        return SaleInvoiceLine(
            batch_id=self.batch_id,
            item_id=self.item_id,
            selling_unit_type=self.selling_unit_type,
            total_unit=Decimal(self.total_unit),
            total_quantity_in_a_unit=self.total_quantity_in_a_unit,
            sub_units=Decimal(self.sub_units),
            price=Decimal(self.price),
            total_price=Decimal(self.total_price),
        )

    @classmethod
    def from_dto(cls, line: SaleInvoiceLine, position: int) -> SaleInvoiceLineModel:
        return cls(
            position=position,
            batch_id=line.batch_id,
            item_id=line.item_id,
            selling_unit_type=line.selling_unit_type,
            total_unit=line.total_unit,
            total_quantity_in_a_unit=line.total_quantity_in_a_unit,
            sub_units=line.sub_units,
            price=line.price,
            total_price=line.total_price,
        )


class SaleServiceChargeModel(Base):
    """A therapy/procedure fee billed on the invoice without stock movement."""

    __tablename__ = "sale_service_charges"

    __table_args__ = (Index("idx_sale_charge_invoice", "invoice_id"),)

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("sale_invoices.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    invoice: Mapped[SaleInvoiceModel] = relationship(back_populates="service_charges")

    def to_dto(self) -> ServiceCharge:
        return ServiceCharge(name=self.name, price=Decimal(self.price))
