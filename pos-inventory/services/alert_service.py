"""
Alert engine.

Derives stock alerts (OUT_OF_STOCK, EXPIRED, EXPIRING_SOON, LOW_STOCK) from
product snapshots and appends them through the inventory store.

Key properties:
- Classification is delegated to domain.alert.classify_product (pure, at most
  one alert type per product per evaluation).
- Alerts are append-only from the engine's point of view: a recomputation does
  not look at earlier alerts, so an unchanged condition produces a fresh alert
  each time.
- Reading and deleting alerts are explicit operations, never derived.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import AsyncGenerator, Iterable, List

from domain.alert import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    StockAlert,
    build_alert,
    classify_product,
)
from domain.product import DEFAULT_EXPIRY_WINDOW_DAYS, Product
from domain.time import Clock, utc_now
from repositories.inventory_store import InventoryStore

logger = logging.getLogger(__name__)


class AlertEngine:
    def __init__(
        self,
        store: InventoryStore,
        days_ahead: int = DEFAULT_EXPIRY_WINDOW_DAYS,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
        clock: Clock = utc_now,
    ) -> None:
        if days_ahead < 0:
            raise ValueError("days_ahead must be >= 0")
        if low_stock_threshold < 0:
            raise ValueError("low_stock_threshold must be >= 0")
        self._store = store
        self._days_ahead = days_ahead
        self._low_stock_threshold = low_stock_threshold
        self._clock = clock

    @property
    def days_ahead(self) -> int:
        return self._days_ahead

    @property
    def low_stock_threshold(self) -> int:
        return self._low_stock_threshold

    def now(self) -> datetime:
        return self._clock()

    def derive_alerts(self, products: Iterable[Product]) -> List[StockAlert]:
        """Build (without persisting) one alert per product that needs attention."""

        as_of = self._clock()
        alerts: List[StockAlert] = []
        for product in products:
            alert_type = classify_product(
                product,
                as_of,
                days_ahead=self._days_ahead,
                low_stock_threshold=self._low_stock_threshold,
            )
            if alert_type is not None:
                alerts.append(build_alert(product, alert_type, created_at=as_of, days_ahead=self._days_ahead))
        return alerts

    async def recompute_alerts(self, products: Iterable[Product]) -> List[StockAlert]:
        """
        Classify every product and append the resulting alerts to the store.

        Returns the stored alerts with their assigned ids.

        Raises:
            StoreError: if the store rejects an alert; alerts appended before
                the failure stay stored
        """

        stored: List[StockAlert] = []
        for alert in self.derive_alerts(products):
            alert_id = await self._store.add_alert(alert)
            stored.append(alert.with_id(alert_id))

        logger.info("Recomputed stock alerts", extra={"alert_count": len(stored)})
        return stored

    async def recompute_from_store(self) -> List[StockAlert]:
        """Recompute alerts over the store's current products."""

        return await self.recompute_alerts(await self._store.list_products())

    async def watch_products(self) -> None:
        """
        Recompute alerts for every product snapshot the store emits.

        Runs until the product feed ends or the task is cancelled; cancelling
        closes the underlying subscription.
        """

        feed = self._store.stream_products()
        try:
            async for products in feed:
                await self.recompute_alerts(products)
        finally:
            await feed.aclose()

    async def mark_alert_read(self, alert_id: str) -> None:
        await self._store.mark_alert_read(alert_id)

    async def delete_alert(self, alert_id: str) -> None:
        await self._store.delete_alert(alert_id)

    async def list_alerts(self) -> List[StockAlert]:
        return await self._store.list_alerts()

    def stream_alerts(self) -> AsyncGenerator[List[StockAlert], None]:
        return self._store.stream_alerts()


__all__ = ["AlertEngine"]
