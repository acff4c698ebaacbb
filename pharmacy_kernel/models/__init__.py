"""
ORM models for the pharmacy kernel.

Importing this package registers every table on ``Base.metadata``.
"""

from pharmacy_kernel.models.item import CatalogItemModel
from pharmacy_kernel.models.purchase_entry import PurchaseEntryModel
from pharmacy_kernel.models.sale_invoice import (
    SaleInvoiceLineModel,
    SaleInvoiceModel,
    SaleServiceChargeModel,
)
from pharmacy_kernel.models.stock_adjustment import StockAdjustmentModel
from pharmacy_kernel.models.stock_batch import StockBatchModel
from pharmacy_kernel.services.sequence_service import SequenceCounter

__all__ = [
    "CatalogItemModel",
    "PurchaseEntryModel",
    "SaleInvoiceLineModel",
    "SaleInvoiceModel",
    "SaleServiceChargeModel",
    "SequenceCounter",
    "StockAdjustmentModel",
    "StockBatchModel",
]
