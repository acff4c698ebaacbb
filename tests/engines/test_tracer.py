"""
Tests for the engine tracer.

Covers:
- Positional and keyword calls fingerprint the same
- Fingerprint changes with the inputs, not with Decimal exponents
- Unknown fingerprint fields rejected at decoration time
- Iterators passed to a traced engine are not consumed
"""

from decimal import Decimal

import pytest

from pharmacy_engines.tax import CentralTax, StateTax, TaxEngine
from pharmacy_engines.tracer import compute_input_fingerprint, traced_engine


def _fingerprints(logs):
    return [r["input_fingerprint"] for r in logs if r["message"] == "PHARMACY_ENGINE_TRACE"]


class TestFingerprint:

    def test_positional_and_keyword_calls_match(self, captured_logs):
        engine = TaxEngine()
        regime = CentralTax(igst=Decimal("12"))

        engine.compute_tax(Decimal("100"), regime)
        engine.compute_tax(taxable_amount=Decimal("100"), regime=regime)

        first, second = _fingerprints(captured_logs())
        assert first == second

    def test_regime_changes_fingerprint(self, captured_logs):
        engine = TaxEngine()

        engine.compute_tax(Decimal("100"), CentralTax(igst=Decimal("12")))
        engine.compute_tax(Decimal("100"), StateTax(cgst=Decimal("6"), sgst=Decimal("6")))

        first, second = _fingerprints(captured_logs())
        assert first != second

    def test_decimal_exponent_ignored(self):
        assert compute_input_fingerprint(
            ("amount",), {"amount": Decimal("1.50")}
        ) == compute_input_fingerprint(("amount",), {"amount": Decimal("1.5")})

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("amount",), {}) == compute_input_fingerprint(
            ("amount",), {"amount": None}
        )

    def test_length(self):
        assert len(compute_input_fingerprint(("a",), {"a": 1})) == 16


class TestDecorator:

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="amount"):

            @traced_engine("demo", "1.0", fingerprint_fields=("amount",))
            def total(values):
                return sum(values)

    def test_iterator_not_consumed(self):
        @traced_engine("demo", "1.0", fingerprint_fields=("values",))
        def total(values):
            return sum(values)

        assert total(iter([Decimal("1"), Decimal("2")])) == Decimal("3")

    def test_default_arguments_fingerprinted(self, captured_logs):
        @traced_engine("demo", "1.0", fingerprint_fields=("values", "scale"))
        def scaled(values, scale=2):
            return [v * scale for v in values]

        scaled([1])
        scaled([1], scale=2)

        first, second = _fingerprints(captured_logs())
        assert first == second
