"""
ORM-level append-only enforcement for settlement audit records.

Two record kinds are written once and never touched again:

Entity             | When Immutable          | Why
-------------------|-------------------------|-----------------------------------
InventoryMovement  | ALWAYS (from creation)  | Stock audit trail for every sale
BankLedgerEntry    | ALWAYS (from creation)  | Balance history; reversal is a new entry

SQLAlchemy fires ``before_update`` / ``before_delete`` mapper events before
the SQL reaches the database.  The listeners below raise
ImmutabilityViolationError, which aborts the flush and leaves the database
untouched.  Corrections are made by writing a new compensating record.
"""

from sqlalchemy import event

from settlement_kernel.exceptions import ImmutabilityViolationError
from settlement_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, target, operation: str, reason: str) -> None:
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


def _check_inventory_movement_update(mapper, connection, target):
    """Prevent any updates to InventoryMovement records."""
    _block(
        "InventoryMovement", target, "UPDATE",
        "Inventory movements are immutable and cannot be modified",
    )


def _check_inventory_movement_delete(mapper, connection, target):
    """Prevent deletion of InventoryMovement records."""
    _block(
        "InventoryMovement", target, "DELETE",
        "Inventory movements cannot be deleted",
    )


def _check_ledger_entry_update(mapper, connection, target):
    """Prevent any updates to BankLedgerEntry records."""
    _block(
        "BankLedgerEntry", target, "UPDATE",
        "Bank ledger entries are immutable; post a reversing entry instead",
    )


def _check_ledger_entry_delete(mapper, connection, target):
    """Prevent deletion of BankLedgerEntry records."""
    _block(
        "BankLedgerEntry", target, "DELETE",
        "Bank ledger entries cannot be deleted",
    )


_LISTENERS = (
    ("InventoryMovement", "before_update", _check_inventory_movement_update),
    ("InventoryMovement", "before_delete", _check_inventory_movement_delete),
    ("BankLedgerEntry", "before_update", _check_ledger_entry_update),
    ("BankLedgerEntry", "before_delete", _check_ledger_entry_delete),
)


def _models() -> dict:
    from settlement_kernel.models.inventory import InventoryMovement
    from settlement_kernel.models.ledger import BankLedgerEntry

    return {
        "InventoryMovement": InventoryMovement,
        "BankLedgerEntry": BankLedgerEntry,
    }


def register_immutability_listeners() -> None:
    """
    Register all append-only enforcement event listeners.

    Call after the models are importable and before any settlement runs.
    Calling twice is harmless.
    """
    models = _models()
    for model_name, event_name, listener_fn in _LISTENERS:
        target = models[model_name]
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Safely remove an event listener, ignoring if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove append-only enforcement event listeners.

    WARNING: Only use this in tests.
    """
    models = _models()
    for model_name, event_name, listener_fn in _LISTENERS:
        _safe_remove_listener(models[model_name], event_name, listener_fn)
