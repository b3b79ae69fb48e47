"""
Typed Exception Hierarchy for the Settlement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A settlement rejection is returned to the point-of-sale client, which must
react to it programmatically: re-sync prices after a PRICE_MISMATCH, offer a
new instant-payment QR code after a PIX_AMOUNT_MISMATCH, show the available
limit after INSUFFICIENT_CREDIT.  Parsing message strings for that is
fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (the figures the client needs)
  4. Every exception declares its HTTP status class (client vs server error)

Example:
    try:
        pipeline.settle(request)
    except PriceMismatchError as e:
        api_response(code=e.code, expected=e.expected_price,
                     resolved=e.resolved_price)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SettlementError (base)
    |
    +-- ValidationError
    |   +-- UnsupportedPaymentMethodError
    |   +-- SplitAmountMismatchError
    |   +-- ItemNotFoundError
    |   +-- PayerNotFoundError
    |   +-- MissingPayerDocumentError
    |   +-- InvalidPayerDocumentError
    |   +-- PaymentMethodNotAllowedError
    |   +-- CreditNotAllowedError
    |
    +-- PricingError
    |   +-- PriceMismatchError
    |
    +-- CreditError
    |   +-- InsufficientCreditError
    |   +-- OverduePaymentsError
    |
    +-- InventoryError
    |   +-- InsufficientStockError
    |
    +-- BillingError
    |   +-- BillingAmountBelowMinimumError
    |   +-- BillingProviderNotConfiguredError   (5xx)
    |   +-- BillingProviderError                (5xx)
    |
    +-- ReconciliationError
    |   +-- InstantPaymentAmountMismatchError
    |   +-- InstantPaymentNotConfirmedError
    |   +-- InstantPaymentChargeNotFoundError
    |
    +-- LedgerError
    |   +-- BankAccountNotFoundError
    |
    +-- ImmutabilityViolationError (5xx)

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                            | When Raised
----------------|---------------------------------|--------------------------------------
Validation      | VALIDATION_ERROR                | Missing/ill-formed request field
                | UNSUPPORTED_PAYMENT_METHOD      | Unknown payment method label
                | SPLIT_AMOUNT_MISMATCH           | primary + secondary != total
                | ITEM_NOT_FOUND                  | Cart item is neither product nor raw material
                | PAYER_NOT_FOUND                 | Customer/employee id does not exist
                | MISSING_DOCUMENT                | Billing artifact without CPF/CNPJ
                | INVALID_DOCUMENT                | CPF/CNPJ with wrong digit count
                | PAYMENT_METHOD_NOT_ALLOWED      | Final consumer paying by billing artifact
                | CREDIT_NOT_ALLOWED              | Credit method for employee/casual buyer
----------------|---------------------------------|--------------------------------------
Pricing         | PRICE_MISMATCH                  | Client price != resolved price
----------------|---------------------------------|--------------------------------------
Credit          | INSUFFICIENT_CREDIT             | Required credit > available credit
                | OVERDUE_PAYMENTS                | Payer has overdue artifacts/receivables
----------------|---------------------------------|--------------------------------------
Inventory       | INSUFFICIENT_STOCK              | Stock would go negative
----------------|---------------------------------|--------------------------------------
Billing         | BILLING_AMOUNT_BELOW_MINIMUM    | Installment below provider minimum
                | BILLING_PROVIDER_NOT_CONFIGURED | No provider credentials (5xx)
                | BILLING_PROVIDER_ERROR          | Provider call failed (5xx)
----------------|---------------------------------|--------------------------------------
Reconciliation  | PIX_AMOUNT_MISMATCH             | Cart total too far from confirmed PIX
                | PIX_NOT_CONFIRMED               | Referenced charge is not PAID
                | PIX_CHARGE_NOT_FOUND            | Referenced charge does not exist
----------------|---------------------------------|--------------------------------------
Ledger          | BANK_ACCOUNT_NOT_FOUND          | Target bank account does not exist
----------------|---------------------------------|--------------------------------------
Immutability    | IMMUTABILITY_VIOLATION          | Modifying an append-only record (5xx)

===============================================================================
"""

from decimal import Decimal
from typing import Any


class SettlementError(Exception):
    """
    Base exception for all settlement kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification and an ``http_status`` class attribute for the
    status class returned to the caller.
    """

    code: str = "SETTLEMENT_ERROR"
    http_status: int = 400

    def to_details(self) -> dict[str, Any]:
        """Structured figures carried by the exception, JSON-friendly."""
        details: dict[str, Any] = {}
        for key, value in vars(self).items():
            if key.startswith("_"):
                continue
            if isinstance(value, Decimal):
                value = float(value)
            details[key] = value
        return details


# Validation exceptions


class ValidationError(SettlementError):
    """Request is missing a required field or carries an invalid value."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class UnsupportedPaymentMethodError(ValidationError):
    """Payment method label is not recognised."""

    code: str = "UNSUPPORTED_PAYMENT_METHOD"

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Unsupported payment method: {method!r}", field="payment_method")


class SplitAmountMismatchError(ValidationError):
    """Split payment slices do not add up to the order total."""

    code: str = "SPLIT_AMOUNT_MISMATCH"

    def __init__(self, primary_amount: Decimal, secondary_amount: Decimal, total: Decimal):
        self.primary_amount = primary_amount
        self.secondary_amount = secondary_amount
        self.total = total
        super().__init__(
            f"Combined payment amounts ({primary_amount} + {secondary_amount}) "
            f"do not match total {total}",
            field="payment",
        )


class ItemNotFoundError(ValidationError):
    """Cart item references neither a product nor a raw material."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}", field="items")


class PayerNotFoundError(ValidationError):
    """Customer or employee referenced by the request does not exist."""

    code: str = "PAYER_NOT_FOUND"

    def __init__(self, payer_kind: str, payer_id: str):
        self.payer_kind = payer_kind
        self.payer_id = payer_id
        super().__init__(f"{payer_kind} not found: {payer_id}", field="payer")


class MissingPayerDocumentError(ValidationError):
    """Billing artifacts require the payer's CPF/CNPJ."""

    code: str = "MISSING_DOCUMENT"

    def __init__(self, payer_name: str):
        self.payer_name = payer_name
        super().__init__(
            f"Payer {payer_name} has no CPF/CNPJ on file; "
            "it is required to issue billing artifacts",
            field="payer",
        )


class InvalidPayerDocumentError(ValidationError):
    """CPF must have 11 digits and CNPJ 14."""

    code: str = "INVALID_DOCUMENT"

    def __init__(self, payer_name: str, digits: int):
        self.payer_name = payer_name
        self.digits = digits
        super().__init__(
            f"Invalid CPF/CNPJ for payer {payer_name}: {digits} digits "
            "(expected 11 or 14)",
            field="payer",
        )


class PaymentMethodNotAllowedError(ValidationError):
    """Payment method is not allowed for this payer."""

    code: str = "PAYMENT_METHOD_NOT_ALLOWED"

    def __init__(self, method: str, reason: str):
        self.method = method
        self.reason = reason
        super().__init__(f"Payment method {method} not allowed: {reason}", field="payment")


class CreditNotAllowedError(ValidationError):
    """Credit-consuming methods are reserved for registered customers."""

    code: str = "CREDIT_NOT_ALLOWED"

    def __init__(self, payer_kind: str, method: str):
        self.payer_kind = payer_kind
        self.method = method
        super().__init__(
            f"{payer_kind} payers cannot use credit-consuming method {method}",
            field="payment",
        )


# Pricing exceptions


class PricingError(SettlementError):
    """Base exception for price resolution errors."""

    code: str = "PRICING_ERROR"


class PriceMismatchError(PricingError):
    """
    Client-expected unit price diverges from the resolved price.

    Both values are returned so the client can re-sync its cart.
    """

    code: str = "PRICE_MISMATCH"

    def __init__(self, item_name: str, expected_price: Decimal, resolved_price: Decimal):
        self.item_name = item_name
        self.expected_price = expected_price
        self.resolved_price = resolved_price
        super().__init__(
            f"Price mismatch for {item_name!r}: client {expected_price}, "
            f"server {resolved_price}"
        )


# Credit exceptions


class CreditError(SettlementError):
    """Base exception for credit-related rejections."""

    code: str = "CREDIT_ERROR"


class InsufficientCreditError(CreditError):
    """Required credit exceeds the payer's available credit."""

    code: str = "INSUFFICIENT_CREDIT"

    def __init__(self, required: Decimal, available: Decimal):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient credit. Available: {available}, required: {required}"
        )


class OverduePaymentsError(CreditError):
    """Payer has overdue billing artifacts or receivables."""

    code: str = "OVERDUE_PAYMENTS"

    def __init__(self, overdue_count: int, overdue_amount: Decimal):
        self.overdue_count = overdue_count
        self.overdue_amount = overdue_amount
        super().__init__(
            f"Purchase blocked: {overdue_count} overdue payment(s) "
            f"totalling {overdue_amount}"
        )


# Inventory exceptions


class InventoryError(SettlementError):
    """Base exception for inventory errors."""

    code: str = "INVENTORY_ERROR"


class InsufficientStockError(InventoryError):
    """Stock decrement would drive the product below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )


# Billing exceptions


class BillingError(SettlementError):
    """Base exception for billing artifact errors."""

    code: str = "BILLING_ERROR"


class BillingAmountBelowMinimumError(BillingError):
    """An artifact (or installment) is below the provider's minimum amount."""

    code: str = "BILLING_AMOUNT_BELOW_MINIMUM"

    def __init__(self, amount: Decimal, minimum: Decimal):
        self.amount = amount
        self.minimum = minimum
        super().__init__(
            f"Billing artifact amount {amount} is below the minimum of {minimum}"
        )


class BillingProviderNotConfiguredError(BillingError):
    """No credentials are configured for the billing provider account."""

    code: str = "BILLING_PROVIDER_NOT_CONFIGURED"
    http_status: int = 500

    def __init__(self, account: str):
        self.account = account
        super().__init__(f"Billing provider account {account!r} is not configured")


class BillingProviderError(BillingError):
    """The external billing provider refused or failed the request."""

    code: str = "BILLING_PROVIDER_ERROR"
    http_status: int = 500

    def __init__(self, artifact_code: str, reason: str, status_code: int | None = None):
        self.artifact_code = artifact_code
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to issue billing artifact {artifact_code}: {reason}")


# Reconciliation exceptions


class ReconciliationError(SettlementError):
    """Base exception for instant-payment reconciliation errors."""

    code: str = "RECONCILIATION_ERROR"


class InstantPaymentAmountMismatchError(ReconciliationError):
    """Cart total is too far from the confirmed instant payment amount."""

    code: str = "PIX_AMOUNT_MISMATCH"

    def __init__(self, cart_total: Decimal, confirmed_amount: Decimal, difference: Decimal):
        self.cart_total = cart_total
        self.confirmed_amount = confirmed_amount
        self.difference = difference
        super().__init__(
            f"Cart total {cart_total} differs from the confirmed instant payment "
            f"{confirmed_amount} by {difference}; generate a new charge"
        )


class InstantPaymentNotConfirmedError(ReconciliationError):
    """Referenced instant payment charge has not been confirmed."""

    code: str = "PIX_NOT_CONFIRMED"

    def __init__(self, charge_id: str, status: str):
        self.charge_id = charge_id
        self.status = status
        super().__init__(f"Instant payment {charge_id} is {status}, not PAID")


class InstantPaymentChargeNotFoundError(ReconciliationError):
    """Referenced instant payment charge does not exist."""

    code: str = "PIX_CHARGE_NOT_FOUND"

    def __init__(self, charge_id: str):
        self.charge_id = charge_id
        super().__init__(f"Instant payment charge not found: {charge_id}")


# Ledger exceptions


class LedgerError(SettlementError):
    """Base exception for bank ledger errors."""

    code: str = "LEDGER_ERROR"


class BankAccountNotFoundError(LedgerError):
    """Target bank account does not exist or is inactive."""

    code: str = "BANK_ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str):
        self.account_ref = account_ref
        super().__init__(f"Bank account not found: {account_ref}")


# Immutability exceptions


class ImmutabilityViolationError(SettlementError):
    """Attempt to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"
    http_status: int = 500

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")
