"""
Business modules of the stock and pricing core.

- ``sales``       -- sale invoices: quote, commit, void.
- ``purchasing``  -- purchase entries and opening stock.
- ``inventory``   -- manual stock adjustments and availability queries.

Each module composes ``pharmacy_engines`` (pure computation) with the
kernel's ``StockLedger`` and a ``StockStore``.  None of them commits a
database transaction; the host owns that boundary.
"""
