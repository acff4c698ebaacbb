"""
Pharmacy Kernel

Stock and pricing core for the clinic's medicine and panchakarma inventory:
- Two-level unit hierarchy (main units / sub-units)
- Per-batch stock ledger with conditional (compare-and-swap) updates
- Append-only stock adjustment audit trail
- Typed errors and structured logging
"""

__version__ = "0.1.0"
