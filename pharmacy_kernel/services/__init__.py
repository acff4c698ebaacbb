"""Kernel services: stateful operations over the stock stores."""

from pharmacy_kernel.services.stock_ledger import StockLedger

__all__ = ["StockLedger"]
