"""
Tests for StockAdjustmentService and InventoryQuery.

Covers:
- add / reduce adjustments and their audit records
- Over-reduction refused with no record written
- Audit algebra: initial + adds - reduces == remaining
- Sellable batch listing: whole main units, filter, sort order
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings as hyp_settings
from hypothesis import strategies as st

from pharmacy_kernel.domain.dtos import AdjustType, ItemDefinition, StockBatch
from pharmacy_kernel.exceptions import (
    BatchNotFoundError,
    InsufficientStockError,
    ValidationError,
)
from pharmacy_kernel.stores.memory import InMemoryStockStore
from pharmacy_modules.inventory import InventoryQuery, StockAdjustmentService


@pytest.fixture
def adjustments(memory_store, clock):
    return StockAdjustmentService(memory_store, clock=clock)


@pytest.fixture
def query(memory_store):
    return InventoryQuery(memory_store, memory_store)


class TestApply:

    def test_add(self, adjustments, memory_store, clock, tablets, make_batch):
        batch = make_batch(tablets, 40)

        result = adjustments.apply(batch.id, "15", "add", reason="found in store room")

        assert result.new_remaining == Decimal("55")
        assert memory_store.find_batch(batch.id).total_quantity == Decimal("55")
        record = result.audit_record
        assert record.adjust_type is AdjustType.ADD
        assert record.total_quantity == Decimal("15")
        assert record.batch_number == batch.batch_number
        assert record.item_id == tablets.id
        assert record.adjustment_date == clock.now()
        assert record.reason == "found in store room"

    def test_reduce_records_requested_amount(self, adjustments, tablets, make_batch):
        batch = make_batch(tablets, 40)

        result = adjustments.apply(batch.id, Decimal("12.5"), AdjustType.REDUCE, reason="damaged")

        assert result.new_remaining == Decimal("27.5")
        assert result.audit_record.total_quantity == Decimal("12.5")

    def test_reduce_to_zero(self, adjustments, tablets, make_batch):
        batch = make_batch(tablets, 40)
        assert adjustments.apply(batch.id, "40", "reduce").new_remaining == Decimal("0")

    def test_over_reduce_refused(self, adjustments, memory_store, tablets, make_batch):
        batch = make_batch(tablets, 40)

        with pytest.raises(InsufficientStockError) as exc_info:
            adjustments.apply(batch.id, "41", "reduce")

        assert exc_info.value.shortfalls[0].available == Decimal("40")
        assert memory_store.find_batch(batch.id).total_quantity == Decimal("40")
        assert adjustments.history(batch.id) == []

    @pytest.mark.parametrize("amount", ["0", "-3", "abc"])
    def test_invalid_quantity(self, adjustments, tablets, make_batch, amount):
        batch = make_batch(tablets, 40)
        with pytest.raises(ValidationError):
            adjustments.apply(batch.id, amount, "add")

    def test_invalid_adjust_type(self, adjustments, tablets, make_batch):
        batch = make_batch(tablets, 40)
        with pytest.raises(ValidationError, match="adjust_type"):
            adjustments.apply(batch.id, "1", "transfer")

    def test_unknown_batch(self, adjustments):
        with pytest.raises(BatchNotFoundError):
            adjustments.apply(uuid4(), "1", "add")

    def test_history_in_order(self, adjustments, tablets, make_batch):
        batch = make_batch(tablets, 40)
        other = make_batch(tablets, 40)
        adjustments.apply(batch.id, "5", "add")
        adjustments.apply(other.id, "1", "add")
        adjustments.apply(batch.id, "3", "reduce")

        history = adjustments.history(batch.id)

        assert [(r.adjust_type, r.total_quantity) for r in history] == [
            (AdjustType.ADD, Decimal("5")),
            (AdjustType.REDUCE, Decimal("3")),
        ]

    def test_logs_adjustment(self, adjustments, tablets, make_batch, captured_logs):
        batch = make_batch(tablets, 40)
        adjustments.apply(batch.id, "5", "reduce")

        [entry] = [r for r in captured_logs() if r["message"] == "stock_adjusted"]
        assert entry["batch_id"] == str(batch.id)
        assert entry["new_remaining"] == "35"


class TestAuditAlgebra:

    @given(
        initial=st.integers(min_value=0, max_value=500),
        steps=st.lists(
            st.tuples(st.sampled_from(["add", "reduce"]), st.integers(min_value=1, max_value=200)),
            max_size=20,
        ),
    )
    @hyp_settings(
        max_examples=50,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    def test_remaining_equals_initial_plus_adds_minus_reduces(self, initial, steps):
        store = InMemoryStockStore()
        item = store.add_item(
            ItemDefinition(id=uuid4(), name="Triphala", unit_type="jar",
                           total_quantity_in_a_unit=50)
        )
        batch = store.add_batch(
            StockBatch(item_id=item.id, batch_number="T-1",
                       total_quantity=Decimal(initial), selling_price=Decimal("1"))
        )
        service = StockAdjustmentService(store)

        for kind, amount in steps:
            try:
                service.apply(batch.id, amount, kind)
            except InsufficientStockError:
                pass

        history = service.history(batch.id)
        adds = sum((r.total_quantity for r in history if r.adjust_type is AdjustType.ADD), Decimal(0))
        reduces = sum(
            (r.total_quantity for r in history if r.adjust_type is AdjustType.REDUCE), Decimal(0)
        )
        remaining = store.find_batch(batch.id).total_quantity
        assert remaining == Decimal(initial) + adds - reduces
        assert remaining >= 0


class TestInventoryQuery:

    def test_max_sellable_units_floors(self, query, tablets, make_batch):
        batch = make_batch(tablets, 25)
        assert query.max_sellable_units(batch.id) == 2

    def test_partial_unit_not_sellable(self, query, syrup, tablets, make_batch):
        make_batch(syrup, 99)
        sellable = make_batch(tablets, 10)

        result = query.sellable_batches()

        assert [b.batch_id for b in result] == [sellable.id]
        assert result[0].available_main_units == 1
        assert result[0].remaining_sub_units == Decimal("10")
        assert result[0].unit_type == "strip"

    def test_sorted_by_item_then_batch(self, query, syrup, tablets, make_batch):
        make_batch(tablets, 10, batch_number="b-2")
        make_batch(syrup, 100, batch_number="Z-1")
        make_batch(tablets, 10, batch_number="B-1")

        result = query.sellable_batches()

        assert [(b.item_name, b.batch_number) for b in result] == [
            ("Arogyavardhini Vati", "B-1"),
            ("Arogyavardhini Vati", "b-2"),
            ("Dashmularishta", "Z-1"),
        ]

    def test_search_is_case_insensitive(self, query, syrup, tablets, make_batch):
        make_batch(tablets, 10)
        make_batch(syrup, 100)

        result = query.sellable_batches(search="  DASHMUL ")

        assert [b.item_name for b in result] == ["Dashmularishta"]

    def test_empty_search_lists_all(self, query, syrup, tablets, make_batch):
        make_batch(tablets, 10)
        make_batch(syrup, 100)
        assert len(query.sellable_batches(search="")) == 2
