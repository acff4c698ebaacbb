"""
Module: pharmacy_kernel.models.item
Responsibility: ORM persistence for catalog items (medicines and panchakarma
    consumables) as far as the stock engine needs them: name, main-unit label,
    and sub-units per main unit.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - total_quantity_in_a_unit >= 1 (CHECK constraint and ItemDefinition).
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_kernel.db.base import TrackedBase
from pharmacy_kernel.domain.dtos import ItemDefinition


class CatalogItemModel(TrackedBase):
    """Catalog item row; read-only to the stock engine once created."""

    __tablename__ = "catalog_items"

    __table_args__ = (
        CheckConstraint(
            "total_quantity_in_a_unit >= 1", name="ck_catalog_item_factor"
        ),
        Index("idx_catalog_item_name", "name"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Main-unit label, e.g. "bottle"
    unit_type: Mapped[str] = mapped_column(String(50), nullable=False)

    total_quantity_in_a_unit: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )

    def to_dto(self) -> ItemDefinition:
        return ItemDefinition(
            id=self.id,
            name=self.name,
            unit_type=self.unit_type,
            total_quantity_in_a_unit=self.total_quantity_in_a_unit,
        )

    @classmethod
    def from_dto(cls, item: ItemDefinition) -> CatalogItemModel:
        return cls(
            id=item.id,
            name=item.name,
            unit_type=item.unit_type,
            total_quantity_in_a_unit=item.total_quantity_in_a_unit,
        )
