"""
Module: settlement_kernel.models.sequence
Responsibility: Named counter rows backing SequenceService (order numbers).
Architecture position: Kernel > Models.  May import from db/ only.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Stores the current value of a named sequence.

    Each row represents a sequence (e.g., "order_number").  The
    current_value is incremented atomically under a row lock.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
