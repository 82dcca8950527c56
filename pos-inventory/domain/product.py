"""
Domain: Product catalogue entries.

Rules implemented here:
- stock is a non-negative integer count of sellable units.
- A product without an expiration date never expires.
- "Expiring soon" includes products that have already expired.

All timestamps are UTC and passed explicitly; no implicit 'now' is used.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from .time import require_utc_timestamp

DEFAULT_EXPIRY_WINDOW_DAYS = 7


@dataclass(frozen=True, slots=True)
class Product:
    """
    Immutable snapshot of a product as read from the inventory store.

    The store owns the authoritative stock count; stock changes produce a new
    snapshot via with_stock().
    """

    product_id: str
    name: str
    price: Decimal
    stock: int
    expiration_date: Optional[datetime] = None
    category: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        if self.stock < 0:
            raise ValueError("stock must be >= 0")
        if self.expiration_date is not None:
            require_utc_timestamp("expiration_date", self.expiration_date)

    def is_in_stock(self) -> bool:
        return self.stock > 0

    def is_expired(self, as_of: datetime) -> bool:
        require_utc_timestamp("as_of", as_of)
        if self.expiration_date is None:
            return False
        return self.expiration_date <= as_of

    def is_expiring_soon(self, as_of: datetime, days_ahead: int = DEFAULT_EXPIRY_WINDOW_DAYS) -> bool:
        """True when the product expires within days_ahead of as_of, or already has."""

        require_utc_timestamp("as_of", as_of)
        if self.expiration_date is None:
            return False
        return self.expiration_date <= as_of + timedelta(days=days_ahead)

    def with_stock(self, stock: int) -> "Product":
        return replace(self, stock=stock)


__all__ = ["DEFAULT_EXPIRY_WINDOW_DAYS", "Product"]
