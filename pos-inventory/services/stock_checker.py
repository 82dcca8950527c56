"""
Stock availability checks.

Reads the product from the inventory store on every call; stock counts are
never cached between calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from domain.product import Product
from repositories.inventory_store import InventoryStore


class StockCheckOutcome(str, Enum):
    AVAILABLE = "AVAILABLE"
    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"


@dataclass(frozen=True, slots=True)
class StockCheck:
    """
    Result of an availability check.

    available: True iff the product exists and stock >= requested quantity
    product: the product snapshot read for this check (None when not found)
    outcome: distinguishes "not found" from "insufficient stock"
    """

    available: bool
    product: Optional[Product]
    outcome: StockCheckOutcome
    requested_quantity: int

    @property
    def available_quantity(self) -> int:
        return self.product.stock if self.product is not None else 0


class StockChecker:
    def __init__(self, store: InventoryStore) -> None:
        self._store = store

    async def check_availability(self, product_id: str, requested_quantity: int) -> StockCheck:
        """
        Verify the requested quantity against the product's current stock.

        Raises:
            StoreError: if the store cannot be read
        """

        product = await self._store.get_product(product_id)

        if product is None:
            return StockCheck(
                available=False,
                product=None,
                outcome=StockCheckOutcome.NOT_FOUND,
                requested_quantity=requested_quantity,
            )

        if product.stock < requested_quantity:
            return StockCheck(
                available=False,
                product=product,
                outcome=StockCheckOutcome.INSUFFICIENT_STOCK,
                requested_quantity=requested_quantity,
            )

        return StockCheck(
            available=True,
            product=product,
            outcome=StockCheckOutcome.AVAILABLE,
            requested_quantity=requested_quantity,
        )


__all__ = ["StockCheck", "StockCheckOutcome", "StockChecker"]
