"""
StockLedger -- per-batch sub-unit quantity with conditional mutation.

Responsibility:
    The only component that changes a batch's remaining quantity after the
    batch is created.  Every change is a read-compute-write cycle whose
    write is conditional on the version read (compare-and-swap).  A lost
    race re-reads and recomputes, up to ``settings.cas_max_attempts`` times.

Architecture position:
    Kernel > Services -- imperative shell.  Used by the sales, purchasing
    and inventory modules.  Depends on the ``StockStore`` protocol only.

Invariants enforced:
    - A batch quantity is never written below zero.  ``deduct`` refuses
      (InsufficientStockError) before any write when the fresh read shows
      too little stock, including after a lost race.
    - No unbounded retry loops.
    - One call touches exactly one batch; splitting a request across
      batches is the caller's job.

Failure modes:
    - ValidationError: quantity not > 0.
    - InsufficientStockError: deduction exceeds the remaining quantity.
    - ConcurrencyConflictError: every attempt lost the race.
    - BatchNotFoundError: unknown batch id.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable
from uuid import UUID

from pharmacy_config import EngineSettings, get_settings
from pharmacy_kernel.db.types import ZERO
from pharmacy_kernel.domain.parsing import parse_positive
from pharmacy_kernel.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
    StockShortfall,
)
from pharmacy_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from pharmacy_kernel.stores.base import StockStore

logger = get_logger("services.stock_ledger")


class StockLedger:
    """
    Remaining-quantity ledger over a ``StockStore``.

    Guarantees:
        - ``deduct`` and ``credit`` return the quantity actually written.
        - Concurrent callers against the same batch can never together
          deduct more than the batch held.

    Non-goals:
        - Does NOT open or commit transactions.  Multi-batch atomicity comes
          from the store's ``unit_of_work``.
    """

    def __init__(self, store: StockStore, settings: EngineSettings | None = None):
        self._store = store
        self._settings = settings or get_settings()

    @property
    def max_attempts(self) -> int:
        return self._settings.cas_max_attempts

    def remaining(self, batch_id: UUID) -> Decimal:
        """Current sub-unit quantity of the batch (fresh read)."""
        return self._store.find_batch(batch_id).total_quantity

    def deduct(
        self,
        batch_id: UUID,
        sub_units: Any,
        line_index: int | None = None,
    ) -> Decimal:
        """
        Remove ``sub_units`` from the batch.

        Returns:
            The new remaining quantity.

        Raises:
            InsufficientStockError: ``sub_units`` exceeds what remains.
        """
        amount = parse_positive(sub_units, "sub_units")

        def compute(current: Decimal) -> Decimal:
            if amount > current:
                raise InsufficientStockError(
                    [StockShortfall(batch_id, amount, current, line_index)]
                )
            return current - amount

        new_quantity = self._mutate(batch_id, compute)
        logger.info(
            "stock_deducted",
            extra={
                "batch_id": str(batch_id),
                "sub_units": str(amount),
                "remaining": str(new_quantity),
            },
        )
        return new_quantity

    def credit(self, batch_id: UUID, sub_units: Any) -> Decimal:
        """
        Add ``sub_units`` to the batch.  There is no upper bound.

        Returns:
            The new remaining quantity.
        """
        amount = parse_positive(sub_units, "sub_units")
        new_quantity = self._mutate(batch_id, lambda current: current + amount)
        logger.info(
            "stock_credited",
            extra={
                "batch_id": str(batch_id),
                "sub_units": str(amount),
                "remaining": str(new_quantity),
            },
        )
        return new_quantity

    def _mutate(
        self,
        batch_id: UUID,
        compute: Callable[[Decimal], Decimal],
    ) -> Decimal:
        for attempt in range(1, self.max_attempts + 1):
            batch = self._store.find_batch(batch_id)
            new_quantity = compute(batch.total_quantity)
            # compute() refuses negative results for deductions; credits
            # cannot go below the starting value
            assert new_quantity >= ZERO

            if self._store.compare_and_set_quantity(batch_id, batch.version, new_quantity):
                return new_quantity

            logger.warning(
                "cas_conflict_retry",
                extra={
                    "batch_id": str(batch_id),
                    "attempt": attempt,
                    "expected_version": batch.version,
                },
            )

        logger.error(
            "cas_attempts_exhausted",
            extra={"batch_id": str(batch_id), "attempts": self.max_attempts},
        )
        raise ConcurrencyConflictError(batch_id, self.max_attempts)
