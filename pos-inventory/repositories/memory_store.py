"""
In-memory inventory store.

Implements the InventoryStore contract on plain dictionaries inside one asyncio
event loop. Used for local development (STORE_BACKEND=memory) and the test
suite. Nothing is persisted across process restarts.

Live feeds: each stream_* call registers its own asyncio.Queue; every write
pushes a change marker to all registered queues, and the stream re-reads the
collection for each marker. Markers that pile up while a consumer is busy are
coalesced into a single snapshot.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import AsyncGenerator, Awaitable, Callable, Dict, Iterable, List, Optional, Set, TypeVar
from uuid import uuid4

from domain.alert import StockAlert
from domain.product import Product
from domain.sale import Sale
from repositories.inventory_store import DuplicateRecordError, InventoryStore, RecordNotFoundError, StoreError

T = TypeVar("T")


class _ChangeFeed:
    """Fan-out of change markers to every open subscription of one collection."""

    def __init__(self) -> None:
        self._queues: Set["asyncio.Queue[None]"] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    def publish(self) -> None:
        for queue in self._queues:
            queue.put_nowait(None)

    async def stream(self, snapshot: Callable[[], Awaitable[List[T]]]) -> AsyncGenerator[List[T], None]:
        queue: "asyncio.Queue[None]" = asyncio.Queue()
        self._queues.add(queue)
        try:
            yield await snapshot()
            while True:
                await queue.get()
                while not queue.empty():
                    queue.get_nowait()
                yield await snapshot()
        finally:
            self._queues.discard(queue)


def _newest_first(items: Iterable[T], key: Callable[[T], object]) -> List[T]:
    # reversed insertion order first so ties keep the most recent write on top
    return sorted(reversed(list(items)), key=key, reverse=True)


class InMemoryInventoryStore(InventoryStore):
    """Dictionary-backed InventoryStore for a single event loop."""

    def __init__(self, products: Optional[Iterable[Product]] = None) -> None:
        self._products: Dict[str, Product] = {}
        self._sales: Dict[str, Sale] = {}
        self._alerts: Dict[str, StockAlert] = {}
        self._lock = asyncio.Lock()
        self._product_feed = _ChangeFeed()
        self._sale_feed = _ChangeFeed()
        self._alert_feed = _ChangeFeed()

        for product in products or ():
            product_id = product.product_id or str(uuid4())
            self._products[product_id] = _product_with_id(product, product_id)

    # Products

    async def get_product(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)

    async def list_products(self) -> List[Product]:
        return list(self._products.values())

    async def add_product(self, product: Product) -> str:
        async with self._lock:
            product_id = product.product_id or str(uuid4())
            if product_id in self._products:
                raise DuplicateRecordError(f"Product already exists: {product_id}")
            self._products[product_id] = _product_with_id(product, product_id)
        self._product_feed.publish()
        return product_id

    async def update_stock(self, product_id: str, new_stock: int) -> None:
        async with self._lock:
            product = self._require_product(product_id)
            if new_stock < 0:
                raise StoreError(f"Stock cannot be negative (product {product_id}, requested {new_stock})")
            self._products[product_id] = product.with_stock(new_stock)
        self._product_feed.publish()

    async def decrement_stock(self, product_id: str, amount: int) -> None:
        async with self._lock:
            product = self._require_product(product_id)
            if amount <= 0:
                raise StoreError(f"Decrement amount must be positive, got {amount}")
            if product.stock < amount:
                raise StoreError(
                    f"Stock of product {product_id} would go negative "
                    f"(stock {product.stock}, decrement {amount})"
                )
            self._products[product_id] = product.with_stock(product.stock - amount)
        self._product_feed.publish()

    def stream_products(self) -> AsyncGenerator[List[Product], None]:
        return self._product_feed.stream(self.list_products)

    # Sales

    async def add_sale(self, sale: Sale) -> str:
        async with self._lock:
            sale_id = str(uuid4())
            self._sales[sale_id] = sale.with_id(sale_id)
        self._sale_feed.publish()
        return sale_id

    async def get_sale(self, sale_id: str) -> Optional[Sale]:
        return self._sales.get(sale_id)

    async def list_sales(self) -> List[Sale]:
        return _newest_first(self._sales.values(), key=lambda s: s.sold_at)

    async def delete_sale(self, sale_id: str) -> None:
        async with self._lock:
            if self._sales.pop(sale_id, None) is None:
                raise RecordNotFoundError(f"Sale not found: {sale_id}")
        self._sale_feed.publish()

    def stream_sales(self) -> AsyncGenerator[List[Sale], None]:
        return self._sale_feed.stream(self.list_sales)

    # Alerts

    async def add_alert(self, alert: StockAlert) -> str:
        async with self._lock:
            alert_id = str(uuid4())
            self._alerts[alert_id] = alert.with_id(alert_id)
        self._alert_feed.publish()
        return alert_id

    async def list_alerts(self) -> List[StockAlert]:
        return _newest_first(self._alerts.values(), key=lambda a: a.created_at)

    async def mark_alert_read(self, alert_id: str) -> None:
        async with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                raise RecordNotFoundError(f"Alert not found: {alert_id}")
            if alert.is_read:
                return
            self._alerts[alert_id] = alert.mark_read()
        self._alert_feed.publish()

    async def delete_alert(self, alert_id: str) -> None:
        async with self._lock:
            if self._alerts.pop(alert_id, None) is None:
                raise RecordNotFoundError(f"Alert not found: {alert_id}")
        self._alert_feed.publish()

    def stream_alerts(self) -> AsyncGenerator[List[StockAlert], None]:
        return self._alert_feed.stream(self.list_alerts)

    def _require_product(self, product_id: str) -> Product:
        product = self._products.get(product_id)
        if product is None:
            raise RecordNotFoundError(f"Product not found: {product_id}")
        return product


def _product_with_id(product: Product, product_id: str) -> Product:
    if product.product_id == product_id:
        return product
    return replace(product, product_id=product_id)


__all__ = ["InMemoryInventoryStore"]
