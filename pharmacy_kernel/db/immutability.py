"""
ORM-Level Immutability Enforcement for append-only stock records.

===============================================================================
WHY THIS EXISTS
===============================================================================

The stock adjustment log is the audit trail for every manual add/reduce on a
batch: it is never edited or pruned.  Committed sale invoice lines are the
record of what left the shelf.  This module makes both append-only at the ORM
level:

    session.flush()
         |
         v
    [before_update event] --> _check_*() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_*() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                 | When Immutable              | Allowed changes
-----------------------|-----------------------------|---------------------------
StockAdjustment        | ALWAYS (from creation)      | none
SaleInvoiceLine        | ALWAYS (from creation)      | none
SaleServiceCharge      | ALWAYS (from creation)      | none
SaleInvoice            | ALWAYS (from creation)      | voided_at / void_reason,
                       |                             | once, plus updated_at
"""

from sqlalchemy import event, inspect

from pharmacy_kernel.exceptions import ImmutabilityViolationError
from pharmacy_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Header fields the void flow may set (once)
INVOICE_VOID_FIELDS = frozenset({"voided_at", "void_reason", "updated_at"})


def _block(entity_type: str, target, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_append_only_update(mapper, connection, target):
    entity_type = type(target).__name__.removesuffix("Model")
    _block(entity_type, target, "UPDATE", f"{entity_type} records are append-only")


def _check_append_only_delete(mapper, connection, target):
    entity_type = type(target).__name__.removesuffix("Model")
    _block(entity_type, target, "DELETE", f"{entity_type} records cannot be deleted")


def _check_sale_invoice_update(mapper, connection, target):
    """Allow only the one-time void fields to change on an invoice header."""
    state = inspect(target)
    changed = {
        attr.key
        for attr in state.attrs
        if attr.history.has_changes()
    }
    # Relationship collections are loaded lazily and count as unchanged
    changed -= {"lines", "service_charges"}

    illegal = changed - INVOICE_VOID_FIELDS
    if illegal:
        _block(
            "SaleInvoice",
            target,
            "UPDATE",
            f"committed invoices are immutable (attempted: {sorted(illegal)})",
        )

    voided_history = state.attrs.voided_at.history
    if voided_history.deleted and voided_history.deleted[0] is not None:
        _block("SaleInvoice", target, "UPDATE", "invoice was already voided")


def _check_sale_invoice_delete(mapper, connection, target):
    _block("SaleInvoice", target, "DELETE", "sale invoices cannot be deleted")


def _listeners():
    from pharmacy_kernel.models.sale_invoice import (
        SaleInvoiceLineModel,
        SaleInvoiceModel,
        SaleServiceChargeModel,
    )
    from pharmacy_kernel.models.stock_adjustment import StockAdjustmentModel

    pairs = []
    for model in (StockAdjustmentModel, SaleInvoiceLineModel, SaleServiceChargeModel):
        pairs.append((model, "before_update", _check_append_only_update))
        pairs.append((model, "before_delete", _check_append_only_delete))
    pairs.append((SaleInvoiceModel, "before_update", _check_sale_invoice_update))
    pairs.append((SaleInvoiceModel, "before_delete", _check_sale_invoice_delete))
    return pairs


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners (idempotent).

    Call this after models are imported but before any database operations.
    """
    for target, name, fn in _listeners():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally bypass the rules.
    """
    for target, name, fn in _listeners():
        if event.contains(target, name, fn):
            event.remove(target, name, fn)
