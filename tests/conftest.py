"""
Pytest fixtures for the pharmacy engine test suite.

Provides:
- In-memory store (also the catalog) with a few standard items
- SQLite in-memory database sessions for SQL-store tests
- Deterministic clock and default settings
- Captured structured logs
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from pharmacy_config import EngineSettings
from pharmacy_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from pharmacy_kernel.domain.clock import DeterministicClock
from pharmacy_kernel.domain.dtos import ItemDefinition, StockBatch
from pharmacy_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from pharmacy_kernel.stores.memory import InMemoryStockStore
from pharmacy_kernel.stores.sql import SqlStockStore


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture pharmacy_engine logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, memory_store):
            ...
            logs = captured_logs()
            assert any(r["message"] == "stock_deducted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("pharmacy_engine")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def memory_store():
    return InMemoryStockStore()


@pytest.fixture
def syrup(memory_store):
    """A bottle of 100 ml."""
    return memory_store.add_item(
        ItemDefinition(id=uuid4(), name="Dashmularishta", unit_type="bottle",
                       total_quantity_in_a_unit=100)
    )


@pytest.fixture
def tablets(memory_store):
    """A strip of 10 tablets."""
    return memory_store.add_item(
        ItemDefinition(id=uuid4(), name="Arogyavardhini Vati", unit_type="strip",
                       total_quantity_in_a_unit=10)
    )


@pytest.fixture
def make_batch(memory_store):
    """Factory adding a batch to the memory store."""

    def _make(item, quantity, price="1.00", batch_number=None, **kwargs):
        return memory_store.add_batch(
            StockBatch(
                item_id=item.id,
                batch_number=batch_number or f"B-{uuid4().hex[:6]}",
                total_quantity=Decimal(str(quantity)),
                selling_price=Decimal(price),
                **kwargs,
            )
        )

    return _make


# =============================================================================
# SQL fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    """SQLite in-memory engine with all tables (fresh per test)."""
    reset_engine()
    eng = init_engine_from_url("sqlite://")
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine):
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def sql_store(session):
    return SqlStockStore(session)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as racing threads against shared stock"
    )
