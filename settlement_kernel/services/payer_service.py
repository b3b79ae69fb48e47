"""
PayerService -- resolve a PayerRef into a payer variant.

Responsibility:
    Loads customer and employee rows and converts them into the pure
    ``CustomerPayer`` / ``EmployeePayer`` / ``CasualBuyer`` variants the
    domain works with.  The ``lock_*`` methods take a row lock so that
    credit can be read and written safely inside the settlement
    transaction.

Architecture position:
    Kernel > Services -- imperative shell.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from settlement_kernel.domain.dtos import PayerKind, PayerRef
from settlement_kernel.domain.payer import (
    CasualBuyer,
    CustomerPayer,
    EmployeePayer,
    Payer,
    PayerContact,
)
from settlement_kernel.exceptions import PayerNotFoundError
from settlement_kernel.models.parties import Customer, Employee
from settlement_kernel.services.base import BaseService


def customer_to_payer(customer: Customer) -> CustomerPayer:
    return CustomerPayer(
        id=customer.id,
        name=customer.name,
        contact=PayerContact(
            phone=customer.phone,
            email=customer.email,
            address=customer.address,
            city=customer.city,
        ),
        document=customer.cpf_cnpj,
        available_credit=customer.available_credit,
        credit_limit=customer.credit_limit,
        seller_id=customer.seller_id,
        custom_discount_percent=customer.custom_discount or Decimal("0"),
        payment_terms_days=customer.payment_terms_days,
        is_final_consumer=customer.is_final_consumer,
        use_custom_catalog=customer.use_custom_catalog,
        manually_unblocked=customer.manually_unblocked,
    )


def employee_to_payer(employee: Employee) -> EmployeePayer:
    return EmployeePayer(
        id=employee.id,
        name=employee.name,
        contact=PayerContact(phone=employee.phone, email=employee.email),
        document=employee.cpf,
        available_credit=employee.credit_limit,
        seller_id=employee.seller_id,
    )


class PayerService(BaseService):
    """Payer lookups and locks."""

    def resolve(self, ref: PayerRef) -> Payer:
        """
        Raises:
            PayerNotFoundError: unknown or inactive customer/employee id.
        """
        if ref.kind is PayerKind.CASUAL:
            return CasualBuyer(name=ref.name, contact=PayerContact(phone=ref.phone))
        if ref.kind is PayerKind.CUSTOMER:
            return customer_to_payer(self._get_customer(ref.id, lock=False))
        return employee_to_payer(self._get_employee(ref.id, lock=False))

    def lock_customer(self, customer_id: UUID) -> Customer:
        return self._get_customer(customer_id, lock=True)

    def lock_employee(self, employee_id: UUID) -> Employee:
        return self._get_employee(employee_id, lock=True)

    def _get_customer(self, customer_id: UUID, lock: bool) -> Customer:
        stmt = select(Customer).where(Customer.id == customer_id, Customer.is_active.is_(True))
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        customer = self.session.execute(stmt).scalar_one_or_none()
        if customer is None:
            raise PayerNotFoundError(payer_kind="customer", payer_id=str(customer_id))
        return customer

    def _get_employee(self, employee_id: UUID, lock: bool) -> Employee:
        stmt = select(Employee).where(Employee.id == employee_id, Employee.is_active.is_(True))
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        employee = self.session.execute(stmt).scalar_one_or_none()
        if employee is None:
            raise PayerNotFoundError(payer_kind="employee", payer_id=str(employee_id))
        return employee
