"""
Domain: change owed to a customer at checkout.

Policy: change is received - total when the customer paid enough, otherwise 0.
The result is never negative and the calculation never raises; unusable input
(non-numeric, NaN, infinity) yields 0.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

Amount = Union[Decimal, int, float, str]

_ZERO = Decimal("0")


def _to_decimal(value: Amount) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    try:
        # str() first so floats keep their printed value instead of binary noise
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def calculate_change(total: Amount, received: Amount) -> Decimal:
    total_amount = _to_decimal(total)
    received_amount = _to_decimal(received)
    if total_amount is None or received_amount is None:
        return _ZERO
    if received_amount >= total_amount:
        return received_amount - total_amount
    return _ZERO


__all__ = ["calculate_change"]
