"""
Inventory Domain Models (``pharmacy_modules.inventory.models``).

Frozen results of stock adjustments and availability queries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from pharmacy_kernel.domain.dtos import StockAdjustment


@dataclass(frozen=True)
class AdjustmentResult:
    """Remaining sub-units after an adjustment, with its audit record."""

    new_remaining: Decimal
    audit_record: StockAdjustment


@dataclass(frozen=True)
class BatchAvailability:
    """A batch that can be sold, as listed on the sale form."""

    batch_id: UUID
    item_id: UUID
    item_name: str
    batch_number: str
    unit_type: str
    total_quantity_in_a_unit: int
    remaining_sub_units: Decimal
    available_main_units: int
    selling_price: Decimal
    expiry_date: date | None = None
