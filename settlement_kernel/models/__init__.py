"""ORM models for the settlement kernel."""

from settlement_kernel.models.billing import BillingArtifact, BillingArtifactStatus
from settlement_kernel.models.card import CardFeeConfig, CardSettlement, CardType
from settlement_kernel.models.catalog import CustomerProduct, Product, RawMaterial
from settlement_kernel.models.commission import Commission
from settlement_kernel.models.coupon import Coupon, CouponUsage
from settlement_kernel.models.instant_payment import InstantPaymentCharge
from settlement_kernel.models.inventory import InventoryMovement, MovementType
from settlement_kernel.models.ledger import (
    BankAccount,
    BankLedgerEntry,
    LedgerEntryType,
    LedgerReferenceType,
)
from settlement_kernel.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from settlement_kernel.models.parties import Customer, CustomerType, Employee, Seller
from settlement_kernel.models.receivable import Receivable, ReceivableStatus
from settlement_kernel.models.sequence import SequenceCounter

__all__ = [
    "BankAccount",
    "BankLedgerEntry",
    "BillingArtifact",
    "BillingArtifactStatus",
    "CardFeeConfig",
    "CardSettlement",
    "CardType",
    "Commission",
    "Coupon",
    "CouponUsage",
    "Customer",
    "CustomerProduct",
    "CustomerType",
    "Employee",
    "InstantPaymentCharge",
    "InventoryMovement",
    "LedgerEntryType",
    "LedgerReferenceType",
    "MovementType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "Product",
    "RawMaterial",
    "Receivable",
    "ReceivableStatus",
    "Seller",
    "SequenceCounter",
]
