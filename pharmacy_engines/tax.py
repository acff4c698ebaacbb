"""
Tax Engine - GST regimes for purchase entries.

Three mutually exclusive regimes, modelled as a tagged union so that a
rate belonging to another regime cannot be set:

    NoTax()                   no tax stage
    CentralTax(igst)          inter-state: IGST only
    StateTax(cgst, sgst)      intra-state: CGST and SGST together

State tax is computed as two independent amounts (one per component,
each rounded) and then summed, so each component can be shown on its own
invoice line.

Pure functions with no I/O.

Usage:
    from pharmacy_engines.tax import StateTax, TaxEngine

    breakdown = TaxEngine().compute_tax(
        taxable_amount=Decimal("900"),
        regime=StateTax(cgst=Decimal("6"), sgst=Decimal("6")),
    )
    breakdown.cgst_amount   # Decimal("54.00")
    breakdown.total         # Decimal("108.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Union

from pharmacy_config import EngineSettings, get_settings
from pharmacy_engines.tracer import traced_engine
from pharmacy_kernel.db.types import HUNDRED, ZERO, round_money
from pharmacy_kernel.domain.parsing import parse_decimal
from pharmacy_kernel.exceptions import InvalidTaxConfigError, ValidationError
from pharmacy_kernel.logging_config import get_logger

logger = get_logger("engines.tax")


class TaxKind(str, Enum):
    """Tax regime selector (values match the purchase form's ``taxType``)."""

    NO_TAX = "noTax"
    CENTRAL = "central"
    STATE = "state"


def _rate(value: Any, field: str) -> Decimal:
    # Range is checked by TaxEngine so that it surfaces as InvalidTaxConfigError
    return parse_decimal(value, field, minimum=None)


@dataclass(frozen=True)
class NoTax:
    kind: ClassVar[TaxKind] = TaxKind.NO_TAX

    def rates(self) -> dict[str, Decimal]:
        return {"cgst": ZERO, "sgst": ZERO, "igst": ZERO}


@dataclass(frozen=True)
class CentralTax:
    """IGST only."""

    igst: Decimal
    kind: ClassVar[TaxKind] = TaxKind.CENTRAL

    def __post_init__(self) -> None:
        object.__setattr__(self, "igst", _rate(self.igst, "igst"))

    def rates(self) -> dict[str, Decimal]:
        return {"cgst": ZERO, "sgst": ZERO, "igst": self.igst}


@dataclass(frozen=True)
class StateTax:
    """CGST and SGST together.  One of them may be zero (partial state tax)."""

    cgst: Decimal
    sgst: Decimal
    kind: ClassVar[TaxKind] = TaxKind.STATE

    def __post_init__(self) -> None:
        object.__setattr__(self, "cgst", _rate(self.cgst, "cgst"))
        object.__setattr__(self, "sgst", _rate(self.sgst, "sgst"))

    def rates(self) -> dict[str, Decimal]:
        return {"cgst": self.cgst, "sgst": self.sgst, "igst": ZERO}


TaxRegime = Union[NoTax, CentralTax, StateTax]

NO_TAX = NoTax()


def parse_tax_kind(value: Any) -> TaxKind:
    """Accept a TaxKind or its string value."""
    try:
        return TaxKind(value)
    except ValueError:
        raise ValidationError(
            "tax_type", value, f"must be one of {[k.value for k in TaxKind]}"
        ) from None


def tax_regime_from_fields(
    tax_type: Any,
    cgst: Any = ZERO,
    sgst: Any = ZERO,
    igst: Any = ZERO,
) -> TaxRegime:
    """
    Build a regime from the flat form fields.

    Rates not owned by ``tax_type`` are dropped, which is the same as
    forcing them to zero.
    """
    kind = parse_tax_kind(tax_type)
    if kind is TaxKind.CENTRAL:
        return CentralTax(igst=igst)
    if kind is TaxKind.STATE:
        return StateTax(cgst=cgst, sgst=sgst)
    return NO_TAX


def switch_tax_type(regime: TaxRegime, kind: Any) -> TaxRegime:
    """
    Regime after the user picks ``kind``.

    Picking the current kind keeps the rates; picking another kind starts
    from zero rates, so nothing owned by the previous regime survives.
    """
    target = parse_tax_kind(kind)
    if regime.kind is target:
        return regime
    return tax_regime_from_fields(target)


@dataclass(frozen=True)
class TaxBreakdown:
    """Per-component tax amounts, each already rounded."""

    cgst_amount: Decimal = ZERO
    sgst_amount: Decimal = ZERO
    igst_amount: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount + self.igst_amount


class TaxEngine:
    """
    Compute tax on a taxable (post-discount) amount.

    Raises:
        InvalidTaxConfigError: a rate is outside 0-100, or state tax has
            both rates at zero on a non-zero base (when
            ``reject_empty_state_tax`` is set).
        ValidationError: taxable amount is negative or not numeric.
    """

    def __init__(self, settings: EngineSettings | None = None):
        self._settings = settings or get_settings()

    def validate(self, regime: TaxRegime, taxable_amount: Decimal = ZERO) -> None:
        for field, rate in regime.rates().items():
            if rate < ZERO or rate > HUNDRED:
                logger.warning(
                    "tax_rate_out_of_range",
                    extra={"tax_type": regime.kind.value, "field": field, "rate": str(rate)},
                )
                raise InvalidTaxConfigError(
                    regime.kind.value, f"{field}={rate} must be between 0 and 100"
                )

        if (
            isinstance(regime, StateTax)
            and self._settings.reject_empty_state_tax
            and regime.cgst == ZERO
            and regime.sgst == ZERO
            and taxable_amount != ZERO
        ):
            logger.warning(
                "state_tax_without_rates",
                extra={"taxable_amount": str(taxable_amount)},
            )
            raise InvalidTaxConfigError(
                regime.kind.value, "cgst and sgst are both 0 on a non-zero taxable amount"
            )

    @traced_engine("tax", "1.0", fingerprint_fields=("taxable_amount", "regime"))
    def compute_tax(self, taxable_amount: Any, regime: TaxRegime) -> TaxBreakdown:
        base = parse_decimal(taxable_amount, "taxable_amount")
        self.validate(regime, base)

        if isinstance(regime, CentralTax):
            return TaxBreakdown(igst_amount=self._percent_of(base, regime.igst))
        if isinstance(regime, StateTax):
            return TaxBreakdown(
                cgst_amount=self._percent_of(base, regime.cgst),
                sgst_amount=self._percent_of(base, regime.sgst),
            )
        return TaxBreakdown()

    def _percent_of(self, base: Decimal, rate: Decimal) -> Decimal:
        return round_money(base * rate / HUNDRED, self._settings.money_places)
