"""Database layer - engine, base classes, types, and immutability."""

from settlement_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from settlement_kernel.db.engine import create_tables, get_engine, get_session, session_scope
from settlement_kernel.db.types import Money, Percent, round_money

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Percent",
    "round_money",
]
