"""
Settlement Kernel

Turns a confirmed cart plus a payment plan into durable order, inventory,
receivable, billing, card-settlement, commission and bank-ledger records:
- Priority-based unit price resolution
- Card, billing-artifact and delivery fees
- Credit limit validation and reservation
- Billing artifacts minted before the atomic settlement transaction
- Reconciliation against confirmed instant payments
"""

__version__ = "0.1.0"
