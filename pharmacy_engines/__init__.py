"""
Module: pharmacy_engines
Responsibility:
    Pure calculation engines for the stock and pricing core: unit
    conversion, GST tax regimes, and document pricing.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import pharmacy_kernel domain helpers and pharmacy_config.
    MUST NOT import pharmacy_modules or the kernel stores/services.

Invariants enforced:
    - Decimal-only arithmetic; floats are parsed through ``str``.
    - Determinism: identical inputs always produce identical outputs.
    - Engines never read the clock.
"""

from pharmacy_engines.pricing import PricingCalculator, PricingResult
from pharmacy_engines.tax import (
    NO_TAX,
    CentralTax,
    NoTax,
    StateTax,
    TaxBreakdown,
    TaxEngine,
    TaxKind,
    TaxRegime,
    switch_tax_type,
    tax_regime_from_fields,
)
from pharmacy_engines.units import UnitConversionService, round2

__all__ = [
    "NO_TAX",
    "CentralTax",
    "NoTax",
    "PricingCalculator",
    "PricingResult",
    "StateTax",
    "TaxBreakdown",
    "TaxEngine",
    "TaxKind",
    "TaxRegime",
    "UnitConversionService",
    "round2",
    "switch_tax_type",
    "tax_regime_from_fields",
]
