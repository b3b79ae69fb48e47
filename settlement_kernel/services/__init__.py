"""
Settlement kernel services (imperative shell).

Services own no sessions: they receive one from the caller and only flush.
SettlementPipeline is the entry point; it opens the session scopes.
"""

from settlement_kernel.services.billing_service import BillingService, MintedArtifact
from settlement_kernel.services.card_settlement_service import CardSettlementService
from settlement_kernel.services.catalog_service import CatalogService
from settlement_kernel.services.commission_service import CommissionService
from settlement_kernel.services.coupon_service import CouponService
from settlement_kernel.services.credit_service import CreditService
from settlement_kernel.services.instant_payment_service import InstantPaymentService
from settlement_kernel.services.inventory_service import InventoryService
from settlement_kernel.services.ledger_poster import LedgerPoster
from settlement_kernel.services.overdue_guard import OverduePaymentGuard
from settlement_kernel.services.payer_service import PayerService
from settlement_kernel.services.pipeline import SettlementPipeline, SettlementQuote
from settlement_kernel.services.pricing_service import PricedCart, PricedLine, PricingService
from settlement_kernel.services.receivable_service import ReceivableService
from settlement_kernel.services.sequence_service import SequenceService
from settlement_kernel.services.settlement_transaction import (
    PreparedSettlement,
    SettlementTransaction,
)

__all__ = [
    "BillingService",
    "CardSettlementService",
    "CatalogService",
    "CommissionService",
    "CouponService",
    "CreditService",
    "InstantPaymentService",
    "InventoryService",
    "LedgerPoster",
    "MintedArtifact",
    "OverduePaymentGuard",
    "PayerService",
    "PreparedSettlement",
    "PricedCart",
    "PricedLine",
    "PricingService",
    "ReceivableService",
    "SequenceService",
    "SettlementPipeline",
    "SettlementQuote",
    "SettlementTransaction",
]
