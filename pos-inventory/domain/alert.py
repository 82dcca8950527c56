"""
Domain: Stock alerts and their classification.

Classification rules, evaluated per product, first match wins (most severe first):
- stock == 0                                  -> OUT_OF_STOCK
- expiration_date <= as_of                    -> EXPIRED
- expiration_date <= as_of + days_ahead       -> EXPIRING_SOON
- stock <= low_stock_threshold                -> LOW_STOCK

A product matching none of the rules produces no alert. Each product maps to at
most one AlertType per evaluation.

The only mutation an alert ever sees is its read flag (unread -> read, once).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional

from .product import DEFAULT_EXPIRY_WINDOW_DAYS, Product
from .time import require_utc_timestamp

DEFAULT_LOW_STOCK_THRESHOLD = 5


class AlertType(str, Enum):
    LOW_STOCK = "LOW_STOCK"
    EXPIRING_SOON = "EXPIRING_SOON"
    EXPIRED = "EXPIRED"
    OUT_OF_STOCK = "OUT_OF_STOCK"


@dataclass(frozen=True, slots=True)
class StockAlert:
    """
    Immutable alert raised for a single product condition.

    alert_id is empty until the inventory store assigns one.
    """

    product_id: str
    product_name: str
    alert_type: AlertType
    message: str
    created_at: datetime
    alert_id: str = ""
    is_read: bool = False

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)

    def mark_read(self) -> "StockAlert":
        """Return a read copy. Idempotent: an already-read alert is returned as is."""

        if self.is_read:
            return self
        return replace(self, is_read=True)

    def with_id(self, alert_id: str) -> "StockAlert":
        return replace(self, alert_id=alert_id)


def classify_product(
    product: Product,
    as_of: datetime,
    days_ahead: int = DEFAULT_EXPIRY_WINDOW_DAYS,
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> Optional[AlertType]:
    """
    Resolve the single AlertType for a product, or None when nothing needs attention.

    Deterministic and total over all products.
    """

    require_utc_timestamp("as_of", as_of)

    if product.stock == 0:
        return AlertType.OUT_OF_STOCK
    if product.expiration_date is not None:
        if product.expiration_date <= as_of:
            return AlertType.EXPIRED
        if product.expiration_date <= as_of + timedelta(days=days_ahead):
            return AlertType.EXPIRING_SOON
    if product.stock <= low_stock_threshold:
        return AlertType.LOW_STOCK
    return None


def low_stock_products(
    products: Iterable[Product],
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> List[Product]:
    """Products with stock at or below the threshold, out-of-stock ones included."""

    return [p for p in products if p.stock <= low_stock_threshold]


def expiring_products(
    products: Iterable[Product],
    as_of: datetime,
    days_ahead: int = DEFAULT_EXPIRY_WINDOW_DAYS,
) -> List[Product]:
    """Products expiring within days_ahead of as_of that have not expired yet."""

    require_utc_timestamp("as_of", as_of)
    return [p for p in products if p.is_expiring_soon(as_of, days_ahead) and not p.is_expired(as_of)]


def alert_message(product: Product, alert_type: AlertType, days_ahead: int = DEFAULT_EXPIRY_WINDOW_DAYS) -> str:
    """Human-readable message for an alert of the given type."""

    if alert_type is AlertType.OUT_OF_STOCK:
        return f"Product {product.name} is out of stock"
    if alert_type is AlertType.EXPIRED:
        return f"Product {product.name} expired on {product.expiration_date:%Y-%m-%d}"
    if alert_type is AlertType.EXPIRING_SOON:
        return f"Product {product.name} expires within {days_ahead} days ({product.expiration_date:%Y-%m-%d})"
    return f"Product {product.name} is running low ({product.stock} left)"


def build_alert(
    product: Product,
    alert_type: AlertType,
    created_at: datetime,
    days_ahead: int = DEFAULT_EXPIRY_WINDOW_DAYS,
) -> StockAlert:
    return StockAlert(
        product_id=product.product_id,
        product_name=product.name,
        alert_type=alert_type,
        message=alert_message(product, alert_type, days_ahead),
        created_at=created_at,
    )


__all__ = [
    "AlertType",
    "DEFAULT_LOW_STOCK_THRESHOLD",
    "StockAlert",
    "alert_message",
    "build_alert",
    "classify_product",
    "expiring_products",
    "low_stock_products",
]
