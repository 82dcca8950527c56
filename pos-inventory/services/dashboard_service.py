"""
Dashboard summary for the point-of-sale home screen.

Pure aggregation over product, sale and alert snapshots; the caller reads the
snapshots from the store (or a live feed) and passes them in.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List

from domain.alert import DEFAULT_LOW_STOCK_THRESHOLD, StockAlert, expiring_products, low_stock_products
from domain.product import DEFAULT_EXPIRY_WINDOW_DAYS, Product
from domain.sale import Sale
from domain.time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    """
    Snapshot of the shop's state.

    revenue_today / revenue_today_with_tax cover sales whose sold_at falls on
    the same UTC calendar day as as_of.
    """

    as_of: datetime
    product_count: int
    out_of_stock_products: List[Product]
    low_stock_products: List[Product]
    expiring_products: List[Product]
    unread_alert_count: int
    sales_today: int
    revenue_today: Decimal
    revenue_today_with_tax: Decimal


def build_dashboard(
    products: Iterable[Product],
    sales: Iterable[Sale],
    alerts: Iterable[StockAlert],
    as_of: datetime,
    days_ahead: int = DEFAULT_EXPIRY_WINDOW_DAYS,
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> DashboardSummary:
    require_utc_timestamp("as_of", as_of)

    product_list = list(products)
    today = as_of.date()
    todays_sales = [s for s in sales if s.sold_at.date() == today]

    revenue = sum((s.total_price for s in todays_sales), Decimal("0"))
    revenue_with_tax = sum((s.total_with_tax() for s in todays_sales), Decimal("0"))

    return DashboardSummary(
        as_of=as_of,
        product_count=len(product_list),
        out_of_stock_products=[p for p in product_list if not p.is_in_stock()],
        low_stock_products=low_stock_products(product_list, low_stock_threshold),
        expiring_products=expiring_products(product_list, as_of, days_ahead),
        unread_alert_count=sum(1 for a in alerts if not a.is_read),
        sales_today=len(todays_sales),
        revenue_today=revenue,
        revenue_today_with_tax=revenue_with_tax,
    )


__all__ = ["DashboardSummary", "build_dashboard"]
