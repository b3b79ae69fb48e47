"""
Module: settlement_kernel.models.ledger
Responsibility: Bank accounts and the append-only ledger of postings
    against them.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - balance_after == previous balance + amount, computed under a row lock
      on the bank account (LedgerPoster).
    - Ledger entries are immutable after insert; corrections are new
      entries that reference the original via reference_type/reference_id.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import Base, TrackedBase


class LedgerEntryType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class LedgerReferenceType(str, Enum):
    RECEIVABLE = "RECEIVABLE"


class BankAccount(Base):
    __tablename__ = "bank_accounts"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    # Billing / instant-payment provider sub-account this bank account receives
    provider_account: Mapped[str | None] = mapped_column(String(40), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<BankAccount {self.name} balance={self.balance}>"


class BankLedgerEntry(TrackedBase):
    __tablename__ = "bank_ledger_entries"

    __table_args__ = (
        Index("idx_ledger_account", "bank_account_id"),
        Index("idx_ledger_reference", "reference_type", "reference_id"),
    )

    bank_account_id: Mapped[UUID] = mapped_column(ForeignKey("bank_accounts.id"), nullable=False)
    entry_type: Mapped[str] = mapped_column(String(10), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    reference_type: Mapped[str] = mapped_column(String(30), nullable=False)
    reference_id: Mapped[str] = mapped_column(String(100), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String(60), nullable=False, default="SALES")
