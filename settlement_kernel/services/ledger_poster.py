"""
LedgerPoster -- append a posting to a bank account's ledger.

Responsibility:
    Locks the bank account row, computes ``balance_after = balance + amount``,
    writes an immutable BankLedgerEntry that references the receivable it
    settles and updates the balance.

Architecture position:
    Kernel > Services -- called inside the settlement transaction.

Invariants enforced:
    - entry.balance_after == account balance before the posting + amount.
    - The balance is read and written under the same row lock.

Failure modes:
    - BankAccountNotFoundError: unknown or inactive account.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from settlement_kernel.db.types import round_money
from settlement_kernel.domain.reconciliation import ConfirmedInstantPayment
from settlement_kernel.exceptions import BankAccountNotFoundError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.ledger import (
    BankAccount,
    BankLedgerEntry,
    LedgerEntryType,
    LedgerReferenceType,
)
from settlement_kernel.models.receivable import Receivable
from settlement_kernel.services.base import BaseService

logger = get_logger("services.ledger")


class LedgerPoster(BaseService):

    def _lock_account(self, account_id: UUID) -> BankAccount:
        account = self.session.execute(
            select(BankAccount)
            .where(BankAccount.id == account_id, BankAccount.is_active.is_(True))
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if account is None:
            raise BankAccountNotFoundError(account_ref=str(account_id))
        return account

    def account_for_provider(self, provider_account: str) -> BankAccount:
        account = self.session.execute(
            select(BankAccount)
            .where(
                BankAccount.provider_account == provider_account,
                BankAccount.is_active.is_(True),
            )
            .limit(1)
        ).scalar_one_or_none()
        if account is None:
            raise BankAccountNotFoundError(account_ref=provider_account)
        return account

    def post(
        self,
        account_id: UUID,
        amount: Decimal,
        description: str,
        *,
        reference_type: LedgerReferenceType,
        reference_id: str,
        entry_date: date,
        actor_id: UUID,
    ) -> BankLedgerEntry:
        """
        Post ``amount`` (income) to the account.

        Postconditions:
            The account balance and the entry's balance_after are equal.
        """
        account = self._lock_account(account_id)
        new_balance = account.balance + amount
        entry = BankLedgerEntry(
            bank_account_id=account.id,
            entry_type=LedgerEntryType.INCOME.value,
            amount=amount,
            entry_date=entry_date,
            description=description,
            reference_type=reference_type.value,
            reference_id=reference_id,
            balance_after=new_balance,
            created_by_id=actor_id,
        )
        account.balance = new_balance
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "ledger_entry_posted",
            extra={
                "bank_account_id": str(account.id),
                "amount": amount,
                "balance_after": new_balance,
                "reference_type": reference_type.value,
            },
        )
        return entry

    def post_instant_payment(
        self,
        payment: ConfirmedInstantPayment,
        receivable: Receivable,
        *,
        order_number: str,
        entry_date: date,
        actor_id: UUID,
    ) -> BankLedgerEntry:
        """
        Post the net amount of a confirmed charge to its sub-account's bank account.

        The entry references the PIX receivable it settles; the charge id and
        the provider fee go in the description.
        """
        account = self.account_for_provider(payment.sub_account)
        fee = round_money(payment.fee_amount)
        return self.post(
            account.id,
            payment.net_amount,
            f"Order {order_number} - instant payment {payment.charge_id} (net, fee R$ {fee})",
            reference_type=LedgerReferenceType.RECEIVABLE,
            reference_id=str(receivable.id),
            entry_date=entry_date,
            actor_id=actor_id,
        )
