"""
Sales Module (``pharmacy_modules.sales``).

Responsibility
--------------
Sale invoices for medicines and panchakarma consumables: live quotes,
atomic multi-line commit against batch stock, and void (stock reversal).
Sales carry a discount but no tax stage.
"""

from pharmacy_modules.sales.models import SaleLine, SaleQuote, SaleResult
from pharmacy_modules.sales.service import SaleInvoiceBuilder

__all__ = [
    "SaleInvoiceBuilder",
    "SaleLine",
    "SaleQuote",
    "SaleResult",
]
