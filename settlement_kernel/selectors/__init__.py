"""Selectors for the settlement kernel (read side)."""

from settlement_kernel.selectors.order_selector import (
    CardSettlementView,
    LedgerEntryView,
    MovementView,
    OrderDetail,
    OrderSelector,
    ReceivableView,
)

__all__ = [
    "OrderSelector",
    "OrderDetail",
    "ReceivableView",
    "CardSettlementView",
    "MovementView",
    "LedgerEntryView",
]
