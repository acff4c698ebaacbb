"""
Engine settings schema (``pharmacy_config.schema``).

Responsibility
--------------
Typed, frozen representation of the stock and pricing engine settings.
Validation happens in ``__post_init__`` so an invalid value can never
reach the ledger or the pricing calculator.

Failure modes
-------------
* Out-of-range or wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

CAS_ATTEMPTS_MIN = 1
CAS_ATTEMPTS_MAX = 10


@dataclass(frozen=True)
class EngineSettings:
    """Tunables for the stock ledger, pricing, and invoice numbering."""

    currency: str = "INR"
    money_places: int = 2
    # Bounded retries of the conditional quantity write
    cas_max_attempts: int = 5
    invoice_number_prefix: str = "INV"
    invoice_number_width: int = 6
    # State tax with cgst = sgst = 0 on a non-zero base is a config error
    reject_empty_state_tax: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.currency, str) or len(self.currency) != 3:
            raise ValueError(f"currency must be a 3-letter code, got {self.currency!r}")
        if not _is_int(self.money_places) or not 0 <= self.money_places <= 6:
            raise ValueError(f"money_places must be 0-6, got {self.money_places!r}")
        if not _is_int(self.cas_max_attempts) or not (
            CAS_ATTEMPTS_MIN <= self.cas_max_attempts <= CAS_ATTEMPTS_MAX
        ):
            raise ValueError(
                f"cas_max_attempts must be {CAS_ATTEMPTS_MIN}-{CAS_ATTEMPTS_MAX}, "
                f"got {self.cas_max_attempts!r}"
            )
        if not isinstance(self.invoice_number_prefix, str) or not self.invoice_number_prefix:
            raise ValueError("invoice_number_prefix must be a non-empty string")
        if not _is_int(self.invoice_number_width) or self.invoice_number_width < 1:
            raise ValueError(
                f"invoice_number_width must be >= 1, got {self.invoice_number_width!r}"
            )
        if not isinstance(self.reject_empty_state_tax, bool):
            raise ValueError("reject_empty_state_tax must be a boolean")

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
