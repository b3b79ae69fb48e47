"""
Module: settlement_kernel.db.types
Responsibility: Annotated type aliases and the single sanctioned rounding
    helper for monetary values.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - round_money() is the ONLY sanctioned rounding function for monetary
      values (half-up to cents).
    - No floats anywhere in the kernel.  All monetary amounts use Decimal.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Percentage (e.g. 3.24 for 3.24%)
Percent = Annotated[Decimal, Numeric(9, 4)]

# Short identifier strings
ShortCode = Annotated[str, String(50)]

# Long text for descriptions
LongText = Annotated[str, String(4000)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value: Decimal | int | str | None) -> Decimal:
    """
    Coerce a request/ORM value to Decimal.

    Floats are converted through ``str`` so that 0.1 becomes Decimal("0.1")
    and not its binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the specified decimal places (half-up).

    This is the ONLY sanctioned rounding function for monetary values.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def money_from_minor_units(value: int) -> Decimal:
    """Convert provider minor units (centavos) to a Decimal amount."""
    return Decimal(value) / Decimal(100)


def money_to_minor_units(value: Decimal) -> int:
    """Convert a Decimal amount to provider minor units (centavos)."""
    return int(round_money(value) * 100)
