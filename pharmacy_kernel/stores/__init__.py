"""Store contracts and the two shipped implementations."""

from pharmacy_kernel.stores.base import Catalog, StockStore
from pharmacy_kernel.stores.memory import InMemoryStockStore
from pharmacy_kernel.stores.sql import SqlStockStore

__all__ = [
    "Catalog",
    "InMemoryStockStore",
    "SqlStockStore",
    "StockStore",
]
