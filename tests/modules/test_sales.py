"""
Tests for SaleInvoiceBuilder.

Covers:
- Line pricing from main units to sub-units
- Discount, grand total, remaining amount and status
- All insufficient lines reported at once, with no stock change
- Atomic rollback when a later line fails at commit time
- Service charges, invoice numbering, quote without mutation
- Void (stock reversal) and double void
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from pharmacy_config import EngineSettings
from pharmacy_kernel.domain.dtos import InvoiceStatus, ServiceCharge
from pharmacy_kernel.exceptions import (
    InsufficientStockError,
    InvoiceAlreadyVoidedError,
    ValidationError,
)
from pharmacy_modules.sales import SaleInvoiceBuilder, SaleLine


@pytest.fixture
def builder(memory_store, clock):
    return SaleInvoiceBuilder(memory_store, catalog=memory_store, clock=clock)


class TestSaleLine:

    def test_for_batch_copies_factor_and_price(self, tablets, make_batch):
        batch = make_batch(tablets, 100, price="2.50")
        line = SaleLine.for_batch(batch, tablets, "3")

        assert line.total_quantity_in_a_unit == 10
        assert line.price == Decimal("2.50")
        assert line.selling_unit_type == "strip"
        assert line.total_unit == Decimal("3")

    def test_for_batch_rejects_other_item(self, tablets, syrup, make_batch):
        batch = make_batch(tablets, 100)
        with pytest.raises(ValidationError):
            SaleLine.for_batch(batch, syrup, "1")

    def test_negative_total_unit_rejected(self, tablets, make_batch):
        batch = make_batch(tablets, 100)
        with pytest.raises(ValidationError):
            SaleLine.for_batch(batch, tablets, "-1")


class TestBuild:

    def test_single_line(self, builder, memory_store, tablets, make_batch):
        batch = make_batch(tablets, 100, price="2.00")
        line = builder.line_for(batch.id, Decimal("3"))

        result = builder.build([line], paid_amount=Decimal("60"))

        assert result.sub_total == Decimal("60.00")
        assert result.grand_total == Decimal("60.00")
        assert result.remaining_amount == Decimal("0.00")
        assert result.status is InvoiceStatus.PAID
        assert memory_store.find_batch(batch.id).total_quantity == Decimal("70")
        invoice_line = result.invoice.lines[0]
        assert invoice_line.sub_units == Decimal("30.00")
        assert invoice_line.total_price == Decimal("60.00")

    def test_discount_and_pending_status(self, builder, tablets, make_batch):
        batch = make_batch(tablets, 1000, price="1.12")
        # 90 strips * 10 tablets * 1.12 = 1008
        line = builder.line_for(batch.id, Decimal("90"))

        result = builder.build([line], discount_percent=Decimal("0"), paid_amount=Decimal("500"))

        assert result.grand_total == Decimal("1008.00")
        assert result.remaining_amount == Decimal("508.00")
        assert result.status is InvoiceStatus.PENDING

    def test_discount_applied(self, builder, tablets, make_batch):
        batch = make_batch(tablets, 1000, price="10.00")
        line = builder.line_for(batch.id, Decimal("10"))

        result = builder.build([line], discount_percent=Decimal("10"), paid_amount=Decimal("900"))

        assert result.sub_total == Decimal("1000.00")
        assert result.discount_amount == Decimal("100.00")
        assert result.grand_total == Decimal("900.00")
        assert result.status is InvoiceStatus.PAID

    def test_overpayment_is_paid(self, builder, tablets, make_batch):
        batch = make_batch(tablets, 100, price="1.00")
        line = builder.line_for(batch.id, Decimal("1"))
        result = builder.build([line], paid_amount=Decimal("20"))
        assert result.remaining_amount == Decimal("-10.00")
        assert result.status is InvoiceStatus.PAID

    def test_fractional_main_units(self, builder, memory_store, syrup, make_batch):
        batch = make_batch(syrup, 300, price="0.50")
        line = builder.line_for(batch.id, Decimal("1.5"))

        result = builder.build([line], paid_amount=Decimal("75"))

        assert result.invoice.lines[0].sub_units == Decimal("150.00")
        assert memory_store.find_batch(batch.id).total_quantity == Decimal("150")

    def test_all_shortfalls_reported_and_nothing_deducted(
        self, builder, memory_store, tablets, syrup, make_batch
    ):
        ok = make_batch(tablets, 100)
        short_a = make_batch(tablets, 5)
        short_b = make_batch(syrup, 50)
        lines = [
            builder.line_for(ok.id, Decimal("2")),
            builder.line_for(short_a.id, Decimal("1")),
            builder.line_for(short_b.id, Decimal("1")),
        ]

        with pytest.raises(InsufficientStockError) as exc_info:
            builder.build(lines)

        assert [s.line_index for s in exc_info.value.shortfalls] == [1, 2]
        assert set(exc_info.value.batch_ids) == {short_a.id, short_b.id}
        assert memory_store.find_batch(ok.id).total_quantity == Decimal("100")
        assert memory_store.list_invoices() == []

    def test_lines_on_same_batch_checked_together(self, builder, memory_store, tablets, make_batch):
        batch = make_batch(tablets, 50)
        lines = [builder.line_for(batch.id, Decimal("3")), builder.line_for(batch.id, Decimal("3"))]

        with pytest.raises(InsufficientStockError) as exc_info:
            builder.build(lines)

        shortfall = exc_info.value.shortfalls[0]
        assert shortfall.line_index == 1
        assert shortfall.requested == Decimal("60.00")
        assert memory_store.find_batch(batch.id).total_quantity == Decimal("50")

    def test_commit_time_failure_rolls_back_earlier_lines(
        self, builder, memory_store, tablets, make_batch, monkeypatch
    ):
        first = make_batch(tablets, 100)
        second = make_batch(tablets, 100)
        lines = [builder.line_for(first.id, Decimal("1")), builder.line_for(second.id, Decimal("1"))]

        # Validation passes; the second batch is drained before its deduction
        original_check = builder.check_stock

        def check_then_drain(priced_lines):
            shortfalls = original_check(priced_lines)
            current = memory_store.find_batch(second.id)
            memory_store.compare_and_set_quantity(second.id, current.version, Decimal("0"))
            return shortfalls

        monkeypatch.setattr(builder, "check_stock", check_then_drain)

        with pytest.raises(InsufficientStockError):
            builder.build(lines)

        assert memory_store.find_batch(first.id).total_quantity == Decimal("100")
        assert memory_store.list_invoices() == []

    def test_lost_write_race_is_retried(self, builder, memory_store, tablets, make_batch, monkeypatch):
        batch = make_batch(tablets, 100)
        original_cas = memory_store.compare_and_set_quantity
        competing = []

        # Another till takes 5 sub-units between our read and our write
        def cas_after_competing_sale(batch_id, expected_version, new_quantity):
            if not competing:
                competing.append(batch_id)
                current = memory_store.find_batch(batch_id)
                original_cas(batch_id, current.version, current.total_quantity - 5)
            return original_cas(batch_id, expected_version, new_quantity)

        monkeypatch.setattr(memory_store, "compare_and_set_quantity", cas_after_competing_sale)

        result = builder.build([builder.line_for(batch.id, Decimal("1"))])

        assert competing == [batch.id]
        assert result.invoice.invoice_number == "INV-000001"
        stored = memory_store.find_batch(batch.id)
        assert stored.total_quantity == Decimal("85")
        assert stored.version == 2

    def test_empty_invoice_rejected(self, builder):
        with pytest.raises(ValidationError, match="no lines"):
            builder.build([])

    def test_service_charges_only(self, builder):
        result = builder.build(
            [], service_charges=[ServiceCharge("Abhyanga", Decimal("800"))],
            paid_amount=Decimal("800"),
        )
        assert result.grand_total == Decimal("800.00")
        assert result.invoice.service_charges[0].name == "Abhyanga"

    def test_service_charges_added_to_subtotal(self, builder, tablets, make_batch):
        batch = make_batch(tablets, 100, price="1.00")
        result = builder.build(
            [builder.line_for(batch.id, Decimal("2"))],
            service_charges=[ServiceCharge("Shirodhara", Decimal("500"))],
            discount_percent=Decimal("10"),
        )
        assert result.sub_total == Decimal("520.00")
        assert result.grand_total == Decimal("468.00")
        assert result.status is InvoiceStatus.PENDING

    def test_invoice_metadata(self, builder, clock, tablets, make_batch):
        batch = make_batch(tablets, 100)
        first = builder.build([builder.line_for(batch.id, "1")], patient_ref="OPD-17")
        second = builder.build([builder.line_for(batch.id, "1")])

        assert first.invoice.invoice_number == "INV-000001"
        assert second.invoice.invoice_number == "INV-000002"
        assert first.invoice.sale_date == clock.now()
        assert first.invoice.patient_ref == "OPD-17"

    def test_invoice_number_format_from_settings(self, memory_store, clock, tablets, make_batch):
        settings = EngineSettings(invoice_number_prefix="PK", invoice_number_width=4)
        builder = SaleInvoiceBuilder(memory_store, memory_store, settings, clock)
        batch = make_batch(tablets, 100)
        result = builder.build([builder.line_for(batch.id, "1")])
        assert result.invoice.invoice_number == "PK-0001"

    def test_logs_commit(self, builder, tablets, make_batch, captured_logs):
        batch = make_batch(tablets, 100)
        result = builder.build([builder.line_for(batch.id, "1")])

        committed = [r for r in captured_logs() if r["message"] == "sale_invoice_committed"]
        assert committed[0]["invoice_id"] == str(result.invoice.id)
        assert committed[0]["status"] == "pending"


class TestQuote:

    def test_quote_does_not_touch_stock(self, builder, memory_store, tablets, make_batch):
        batch = make_batch(tablets, 100, price="2.00")
        quote = builder.quote([builder.line_for(batch.id, "4")], paid_amount="10")

        assert quote.grand_total == Decimal("80.00")
        assert quote.remaining_amount == Decimal("70.00")
        assert memory_store.find_batch(batch.id).total_quantity == Decimal("100")
        assert memory_store.list_invoices() == []

    def test_quote_validates_discount(self, builder, tablets, make_batch):
        batch = make_batch(tablets, 100)
        with pytest.raises(ValidationError):
            builder.quote([builder.line_for(batch.id, "1")], discount_percent="101")


class TestVoid:

    def test_void_restores_stock(self, builder, memory_store, clock, tablets, make_batch):
        batch = make_batch(tablets, 100)
        result = builder.build([builder.line_for(batch.id, "4")])
        clock.advance(60)

        voided = builder.void(result.invoice.id, reason="returned unopened")

        assert memory_store.find_batch(batch.id).total_quantity == Decimal("100")
        assert voided.voided_at == clock.now()
        assert voided.void_reason == "returned unopened"
        assert voided.status is result.invoice.status
        assert memory_store.get_invoice(result.invoice.id).is_voided

    def test_double_void_rejected(self, builder, memory_store, tablets, make_batch):
        batch = make_batch(tablets, 100)
        result = builder.build([builder.line_for(batch.id, "4")])
        builder.void(result.invoice.id)

        with pytest.raises(InvoiceAlreadyVoidedError):
            builder.void(result.invoice.id)
        assert memory_store.find_batch(batch.id).total_quantity == Decimal("100")

    def test_void_unknown_invoice(self, builder):
        from pharmacy_kernel.exceptions import InvoiceNotFoundError

        with pytest.raises(InvoiceNotFoundError):
            builder.void(uuid4())
