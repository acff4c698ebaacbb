"""Tests for InMemoryStockStore: unit of work, CAS and lookups."""

from decimal import Decimal
from uuid import uuid4

import pytest

from pharmacy_kernel.domain.dtos import StockBatch
from pharmacy_kernel.exceptions import (
    BatchNotFoundError,
    InvoiceNotFoundError,
    ItemNotFoundError,
    ValidationError,
)
from pharmacy_kernel.stores import Catalog, InMemoryStockStore, StockStore


class TestProtocols:

    def test_satisfies_store_and_catalog(self, memory_store):
        assert isinstance(memory_store, StockStore)
        assert isinstance(memory_store, Catalog)


class TestUnitOfWork:

    def test_commit_keeps_writes(self, memory_store, tablets, make_batch):
        batch = make_batch(tablets, 10)
        with memory_store.unit_of_work():
            memory_store.compare_and_set_quantity(batch.id, 0, Decimal("4"))
            memory_store.next_sequence("sale_invoice")

        assert memory_store.find_batch(batch.id).total_quantity == Decimal("4")
        assert memory_store.next_sequence("sale_invoice") == 2

    def test_exception_reverts_every_write(self, memory_store, tablets):
        existing = memory_store.add_batch(
            StockBatch(item_id=tablets.id, batch_number="E-1",
                       total_quantity=Decimal("10"), selling_price=Decimal("1"))
        )

        with pytest.raises(RuntimeError):
            with memory_store.unit_of_work():
                memory_store.compare_and_set_quantity(existing.id, 0, Decimal("3"))
                memory_store.compare_and_set_quantity(existing.id, 1, Decimal("2"))
                memory_store.add_batch(
                    StockBatch(item_id=tablets.id, batch_number="N-1",
                               total_quantity=Decimal("5"), selling_price=Decimal("1"))
                )
                memory_store.next_sequence("sale_invoice")
                raise RuntimeError("abort")

        restored = memory_store.find_batch(existing.id)
        assert restored.total_quantity == Decimal("10")
        assert restored.version == 0
        assert memory_store.find_batch_by_number(tablets.id, "N-1") is None
        assert memory_store.next_sequence("sale_invoice") == 1

    def test_nested_unit_joins_outer(self, memory_store, tablets, make_batch):
        batch = make_batch(tablets, 10)

        with pytest.raises(RuntimeError):
            with memory_store.unit_of_work():
                with memory_store.unit_of_work():
                    memory_store.compare_and_set_quantity(batch.id, 0, Decimal("1"))
                raise RuntimeError("outer fails after inner finished")

        assert memory_store.find_batch(batch.id).total_quantity == Decimal("10")

    def test_writes_outside_unit_are_not_logged(self, memory_store, tablets, make_batch):
        batch = make_batch(tablets, 10)
        memory_store.compare_and_set_quantity(batch.id, 0, Decimal("7"))

        with pytest.raises(RuntimeError):
            with memory_store.unit_of_work():
                raise RuntimeError("nothing to undo")

        assert memory_store.find_batch(batch.id).total_quantity == Decimal("7")


class TestLookups:

    def test_stale_cas_rejected(self, memory_store, tablets, make_batch):
        batch = make_batch(tablets, 10)
        assert memory_store.compare_and_set_quantity(batch.id, 0, Decimal("9"))
        assert not memory_store.compare_and_set_quantity(batch.id, 0, Decimal("8"))
        assert memory_store.find_batch(batch.id).total_quantity == Decimal("9")

    def test_duplicate_batch_number(self, memory_store, tablets, make_batch):
        make_batch(tablets, 10, batch_number="D-1")
        with pytest.raises(ValidationError):
            make_batch(tablets, 5, batch_number="D-1")

    def test_list_batches_by_item(self, memory_store, tablets, syrup, make_batch):
        make_batch(tablets, 10)
        make_batch(syrup, 10)
        assert len(memory_store.list_batches(tablets.id)) == 1
        assert len(memory_store.list_batches()) == 2

    @pytest.mark.parametrize(
        "lookup, error",
        [
            ("find_batch", BatchNotFoundError),
            ("get_item", ItemNotFoundError),
            ("get_invoice", InvoiceNotFoundError),
        ],
    )
    def test_unknown_ids(self, lookup, error):
        with pytest.raises(error):
            getattr(InMemoryStockStore(), lookup)(uuid4())
