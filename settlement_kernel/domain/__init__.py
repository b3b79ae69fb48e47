"""
Settlement domain -- pure functional core.

Pricing, fees, credit, installments, card settlement dates, and
reconciliation.  Nothing in this package performs I/O or touches the
database; services feed it snapshots and persist what it returns.
"""
