"""
Payer variants -- who is paying for the order.

Responsibility:
    Replaces "is it a customer, employee, or casual buyer" branching on field
    presence with three explicit frozen variants that share one capability
    interface: name, contact, document, available credit, seller link,
    commission eligibility, credit-method eligibility, default discount,
    and payment terms.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.  Built by PayerService
    from ORM rows.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class PayerContact:
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    city: str | None = None


@dataclass(frozen=True)
class CustomerPayer:
    """A registered customer account (wholesale or retail)."""

    id: UUID
    name: str
    contact: PayerContact
    document: str | None
    available_credit: Decimal
    credit_limit: Decimal
    seller_id: UUID | None = None
    custom_discount_percent: Decimal = Decimal("0")
    payment_terms_days: int | None = None
    is_final_consumer: bool = False
    use_custom_catalog: bool = False
    manually_unblocked: bool = False

    kind = "customer"

    @property
    def earns_commission(self) -> bool:
        return self.seller_id is not None

    @property
    def can_use_credit_methods(self) -> bool:
        return True


@dataclass(frozen=True)
class EmployeePayer:
    """
    A staff member buying for themselves.

    The available credit is the employee's credit limit.  A seller link is
    recorded on the order but never earns a commission.
    """

    id: UUID
    name: str
    contact: PayerContact
    document: str | None
    available_credit: Decimal
    seller_id: UUID | None = None

    kind = "employee"
    custom_discount_percent = Decimal("0")
    payment_terms_days = None
    is_final_consumer = False
    use_custom_catalog = False

    @property
    def credit_limit(self) -> Decimal:
        return self.available_credit

    @property
    def earns_commission(self) -> bool:
        return False

    @property
    def can_use_credit_methods(self) -> bool:
        return False


@dataclass(frozen=True)
class CasualBuyer:
    """A walk-in buyer with no account record, identified only by name."""

    name: str
    contact: PayerContact = PayerContact()

    kind = "casual"
    id = None
    document = None
    available_credit = None
    credit_limit = None
    seller_id = None
    custom_discount_percent = Decimal("0")
    payment_terms_days = None
    is_final_consumer = False
    use_custom_catalog = False

    @property
    def earns_commission(self) -> bool:
        return False

    @property
    def can_use_credit_methods(self) -> bool:
        return False


Payer = CustomerPayer | EmployeePayer | CasualBuyer
