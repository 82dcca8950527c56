"""
Inventory store interface (persistence boundary).

The core reads and writes products, sales and alerts only through this
interface. Implementations:
- repositories.memory_store.InMemoryInventoryStore
- repositories.supabase_store.SupabaseInventoryStore

Contract:
- Reads of a missing record return None; they do not raise. Writes against a
  missing record raise RecordNotFoundError. Inserting a record under an id that
  is already taken raises DuplicateRecordError.
- Any failure of the underlying store raises StoreError with the original
  exception chained as __cause__ (and kept on .cause).
- decrement_stock is atomic on the stock counter and refuses to take stock
  below zero.
- stream_* methods are async generators: they yield the current snapshot first,
  then a fresh snapshot after every change. Each call opens an independent
  subscription; closing the generator closes the subscription.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncGenerator, List, Optional

from domain.alert import StockAlert
from domain.product import Product
from domain.sale import Sale


class StoreError(RuntimeError):
    """Raised when the inventory store rejects or fails an operation."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class RecordNotFoundError(StoreError):
    """Raised when a write targets a product, sale or alert that does not exist."""


class DuplicateRecordError(StoreError):
    """Raised when a new record reuses the id of an existing one."""


class InventoryStore(ABC):
    """Abstract read/write access to products, sales and alerts."""

    # Products

    @abstractmethod
    async def get_product(self, product_id: str) -> Optional[Product]:
        """Return the product with this id, or None."""

    @abstractmethod
    async def list_products(self) -> List[Product]:
        """Return every product."""

    @abstractmethod
    async def add_product(self, product: Product) -> str:
        """Persist a new product and return its assigned id."""

    @abstractmethod
    async def update_stock(self, product_id: str, new_stock: int) -> None:
        """Set the stock count of a product (operator correction)."""

    @abstractmethod
    async def decrement_stock(self, product_id: str, amount: int) -> None:
        """Atomically subtract amount from a product's stock."""

    @abstractmethod
    def stream_products(self) -> AsyncGenerator[List[Product], None]:
        """Live feed of product snapshots."""

    # Sales

    @abstractmethod
    async def add_sale(self, sale: Sale) -> str:
        """Persist a sale and return its assigned id."""

    @abstractmethod
    async def get_sale(self, sale_id: str) -> Optional[Sale]:
        """Return the sale with this id, or None."""

    @abstractmethod
    async def list_sales(self) -> List[Sale]:
        """Return all sales, newest first."""

    @abstractmethod
    async def delete_sale(self, sale_id: str) -> None:
        """Remove a sale record."""

    @abstractmethod
    def stream_sales(self) -> AsyncGenerator[List[Sale], None]:
        """Live feed of sale snapshots, newest first."""

    # Alerts

    @abstractmethod
    async def add_alert(self, alert: StockAlert) -> str:
        """Persist an alert and return its assigned id."""

    @abstractmethod
    async def list_alerts(self) -> List[StockAlert]:
        """Return all alerts, newest first."""

    @abstractmethod
    async def mark_alert_read(self, alert_id: str) -> None:
        """Set the read flag of an alert. Marking a read alert again is a no-op."""

    @abstractmethod
    async def delete_alert(self, alert_id: str) -> None:
        """Remove an alert."""

    @abstractmethod
    def stream_alerts(self) -> AsyncGenerator[List[StockAlert], None]:
        """Live feed of alert snapshots, newest first."""

    async def close(self) -> None:
        """Release resources held by the store. Default: nothing to release."""


__all__ = ["DuplicateRecordError", "InventoryStore", "RecordNotFoundError", "StoreError"]
