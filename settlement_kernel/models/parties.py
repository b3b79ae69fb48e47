"""
Module: settlement_kernel.models.parties
Responsibility: ORM persistence for payers and sellers -- customers,
    employees, and the sellers who earn commission on customer orders.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - available_credit never goes below zero through settlement; it is read
      and written under a row lock by CreditService.
    - Employee credit is the credit_limit column itself.
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import Base


class CustomerType(str, Enum):
    REGULAR = "REGULAR"
    FINAL_CONSUMER = "FINAL_CONSUMER"


class Seller(Base):
    __tablename__ = "sellers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Percent of the order total, e.g. 5 == 5%
    commission_rate: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Customer(Base):
    """Registered customer account."""

    __tablename__ = "customers"

    __table_args__ = (Index("idx_customer_seller", "seller_id"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    # CPF (11 digits) or CNPJ (14 digits), punctuation allowed
    cpf_cnpj: Mapped[str | None] = mapped_column(String(20), nullable=True)

    customer_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CustomerType.REGULAR.value
    )

    credit_limit: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    available_credit: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    # Default wholesale discount percent
    custom_discount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    payment_terms_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    seller_id: Mapped[UUID | None] = mapped_column(ForeignKey("sellers.id"), nullable=True)

    use_custom_catalog: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    manually_unblocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def is_final_consumer(self) -> bool:
        return self.customer_type == CustomerType.FINAL_CONSUMER.value

    def __repr__(self) -> str:
        return f"<Customer {self.name} credit={self.available_credit}>"


class Employee(Base):
    __tablename__ = "employees"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cpf: Mapped[str | None] = mapped_column(String(20), nullable=True)
    credit_limit: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    seller_id: Mapped[UUID | None] = mapped_column(ForeignKey("sellers.id"), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
