"""
Purchasing Module (``pharmacy_modules.purchasing``).

Responsibility
--------------
Purchase entries (priced with discount then GST, received into batch
stock in sub-units) and opening stock.
"""

from pharmacy_modules.purchasing.models import OpeningStock, PurchaseLine, PurchaseResult
from pharmacy_modules.purchasing.service import PurchaseEntryProcessor

__all__ = [
    "OpeningStock",
    "PurchaseEntryProcessor",
    "PurchaseLine",
    "PurchaseResult",
]
