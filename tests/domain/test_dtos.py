"""Tests for kernel DTO invariants."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from pharmacy_kernel.domain.dtos import (
    AdjustType,
    ItemDefinition,
    StockAdjustment,
    StockBatch,
)
from pharmacy_kernel.exceptions import (
    InvalidFactorError,
    InvalidQuantityError,
    ValidationError,
)


class TestItemDefinition:

    def test_factor_must_be_at_least_one(self):
        with pytest.raises(InvalidFactorError):
            ItemDefinition(id=uuid4(), name="Triphala", unit_type="box",
                           total_quantity_in_a_unit=0)

    def test_factor_must_be_integer(self):
        with pytest.raises(ValidationError):
            ItemDefinition(id=uuid4(), name="Triphala", unit_type="box",
                           total_quantity_in_a_unit=2.5)


class TestStockBatch:

    def test_negative_quantity_rejected(self):
        with pytest.raises(InvalidQuantityError):
            StockBatch(item_id=uuid4(), batch_number="B1",
                       total_quantity=Decimal("-1"), selling_price=Decimal("1"))

    def test_batch_number_required(self):
        with pytest.raises(ValidationError):
            StockBatch(item_id=uuid4(), batch_number="  ",
                       total_quantity=Decimal("1"), selling_price=Decimal("1"))

    def test_with_quantity_bumps_version(self):
        batch = StockBatch(item_id=uuid4(), batch_number="B1",
                           total_quantity=Decimal("10"), selling_price=Decimal("1"))
        updated = batch.with_quantity(Decimal("4"))
        assert updated.total_quantity == Decimal("4")
        assert updated.version == batch.version + 1
        assert updated.id == batch.id


class TestStockAdjustment:

    def test_quantity_must_be_positive(self):
        with pytest.raises(InvalidQuantityError):
            StockAdjustment(
                item_id=uuid4(), batch_id=uuid4(), batch_number="B1",
                adjustment_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
                total_quantity=Decimal("0"), adjust_type=AdjustType.ADD,
            )
