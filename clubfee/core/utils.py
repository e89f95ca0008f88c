"""
Utility functions for the application.
"""
from typing import Optional
from clubfee.core.config import settings


def round_up_to_unit(amount: int, unit: Optional[int] = None) -> int:
    """
    Round an amount up to the nearest unit (default: settlement rounding unit).
    Example: 32,100 -> 33,000 and 32,000 -> 32,000. Non-positive amounts become 0.
    """
    unit = unit or settings.SETTLEMENT_ROUNDING_UNIT
    if amount <= 0:
        return 0
    # Integer ceiling keeps large amounts exact
    return -(-amount // unit) * unit


def format_amount(amount: int) -> str:
    """Format an amount with thousands separators and the currency suffix."""
    return f"{amount:,}{settings.CURRENCY_UNIT}"
