"""
Inventory Module (``pharmacy_modules.inventory``).

Responsibility
--------------
Manual stock adjustments with an append-only audit log, and sellable-stock
queries for the sale form.
"""

from pharmacy_modules.inventory.models import AdjustmentResult, BatchAvailability
from pharmacy_modules.inventory.service import InventoryQuery, StockAdjustmentService

__all__ = [
    "AdjustmentResult",
    "BatchAvailability",
    "InventoryQuery",
    "StockAdjustmentService",
]
