"""
Append-only enforcement for InventoryMovement and BankLedgerEntry.

Both are audit records: a correction is a new row, never an edit.  The
ORM listeners in settlement_kernel.db.immutability reject UPDATE and
DELETE before any SQL is emitted.
"""

from decimal import Decimal

import pytest

from settlement_kernel.exceptions import ImmutabilityViolationError
from settlement_kernel.models import (
    BankLedgerEntry,
    InventoryMovement,
    LedgerEntryType,
    LedgerReferenceType,
    MovementType,
)
from tests.conftest import TEST_ACTOR_ID, TEST_TODAY


@pytest.fixture
def movement(persist, plain_product):
    return persist(
        InventoryMovement(
            product_id=plain_product.id,
            movement_type=MovementType.EXIT.value,
            quantity=-3,
            previous_stock=100,
            new_stock=97,
            reason="Order ESP000001",
            created_by_id=TEST_ACTOR_ID,
        )
    )


@pytest.fixture
def ledger_entry(persist, bank_account):
    return persist(
        BankLedgerEntry(
            bank_account_id=bank_account.id,
            entry_type=LedgerEntryType.INCOME.value,
            amount=Decimal("16.00"),
            entry_date=TEST_TODAY,
            description="Order ESP000001",
            reference_type=LedgerReferenceType.RECEIVABLE.value,
            reference_id="rcv-1",
            balance_after=Decimal("16.00"),
            created_by_id=TEST_ACTOR_ID,
        )
    )


class TestInventoryMovementImmutability:

    def test_update_is_rejected(self, movement, session):
        row = session.get(InventoryMovement, movement.id)
        row.quantity = -1
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "InventoryMovement"
        assert exc_info.value.entity_id == str(movement.id)

    def test_delete_is_rejected(self, movement, session):
        session.delete(session.get(InventoryMovement, movement.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestBankLedgerEntryImmutability:

    def test_update_is_rejected(self, ledger_entry, session, captured_logs):
        row = session.get(BankLedgerEntry, ledger_entry.id)
        row.amount = Decimal("1.00")
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.http_status == 500
        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked[0]["operation"] == "UPDATE"

    def test_delete_is_rejected(self, ledger_entry, session):
        session.delete(session.get(BankLedgerEntry, ledger_entry.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_new_rows_are_allowed(self, ledger_entry, persist, read, bank_account):
        persist(
            BankLedgerEntry(
                bank_account_id=bank_account.id,
                entry_type=LedgerEntryType.EXPENSE.value,
                amount=Decimal("-16.00"),
                entry_date=TEST_TODAY,
                description="Reversal of ESP000001",
                reference_type=LedgerReferenceType.RECEIVABLE.value,
                reference_id="rcv-1",
                balance_after=Decimal("0.00"),
                created_by_id=TEST_ACTOR_ID,
            )
        )
        assert read(lambda s: s.query(BankLedgerEntry).count()) == 2
