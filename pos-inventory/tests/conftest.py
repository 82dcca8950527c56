"""
Pytest configuration for the POS inventory tests.

This file adds the parent directory to the Python path so that tests
can import from the domain, repositories, services and api modules, and
provides shared fixtures (fixed clock, seeded in-memory store, a scriptable
store double for failure and cancellation scenarios).
"""

import asyncio
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

import pytest

# Add the pos-inventory directory to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.product import Product  # noqa: E402
from domain.sale import Sale  # noqa: E402
from repositories.inventory_store import StoreError  # noqa: E402
from repositories.memory_store import InMemoryInventoryStore  # noqa: E402

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class ScriptedStore(InMemoryInventoryStore):
    """
    In-memory store that records every call and can be told to fail or block.

    fail_*: raise StoreError from that operation
    *_gate: when set, the operation waits for the event before doing anything
            (the matching *_entered event is set once the call is waiting)
    """

    def __init__(self, products=None) -> None:
        super().__init__(products)
        self.calls: List[str] = []
        self.fail_get_product = False
        self.fail_add_sale = False
        self.fail_decrement = False
        self.get_product_gate: Optional[asyncio.Event] = None
        self.get_product_entered: Optional[asyncio.Event] = None
        self.add_sale_gate: Optional[asyncio.Event] = None
        self.add_sale_entered: Optional[asyncio.Event] = None

    async def get_product(self, product_id):
        self.calls.append("get_product")
        if self.get_product_gate is not None:
            self.get_product_entered.set()
            await self.get_product_gate.wait()
        if self.fail_get_product:
            raise StoreError("read timed out", cause=TimeoutError("read timed out"))
        return await super().get_product(product_id)

    async def add_sale(self, sale):
        self.calls.append("add_sale")
        if self.add_sale_gate is not None:
            self.add_sale_entered.set()
            await self.add_sale_gate.wait()
        if self.fail_add_sale:
            raise StoreError("insert rejected", cause=ConnectionError("insert rejected"))
        return await super().add_sale(sale)

    async def decrement_stock(self, product_id, amount):
        self.calls.append("decrement_stock")
        if self.fail_decrement:
            raise StoreError("update rejected", cause=ConnectionError("update rejected"))
        await super().decrement_stock(product_id, amount)

    async def add_alert(self, alert):
        self.calls.append("add_alert")
        return await super().add_alert(alert)

    @property
    def writes(self) -> List[str]:
        return [c for c in self.calls if c in ("add_sale", "decrement_stock", "add_alert")]


def make_product(
    product_id: str = "prod-001",
    stock: int = 10,
    price: str = "10.0",
    name: str = "Coffee 500g",
    expiration_date: Optional[datetime] = None,
) -> Product:
    return Product(
        product_id=product_id,
        name=name,
        price=Decimal(price),
        stock=stock,
        expiration_date=expiration_date,
    )


def make_sale(
    product_id: str = "prod-001",
    quantity: int = 2,
    unit_price: str = "10.0",
    operator_id: str = "user_123",
    sold_at: datetime = NOW,
) -> Sale:
    return Sale(
        product_id=product_id,
        quantity=quantity,
        unit_price=Decimal(unit_price),
        operator_id=operator_id,
        sold_at=sold_at,
    )


@pytest.fixture
def fixed_clock():
    """Clock pinned to NOW."""

    return lambda: NOW


@pytest.fixture
def store() -> InMemoryInventoryStore:
    """In-memory store seeded with one product (stock=10, price=10.0)."""

    return InMemoryInventoryStore([make_product()])


@pytest.fixture
def scripted_store() -> ScriptedStore:
    """ScriptedStore seeded with one product (stock=10, price=10.0)."""

    return ScriptedStore([make_product()])
