"""
Supabase inventory store (persistence).

This module provides *only* persistence operations for products, sales and
alerts on top of the Supabase async client. It does not enforce business rules
(validation, availability, alert classification); those live in the services.

Tables (keep aligned with your database schema):
- products: product_id, name, price, stock, expiration_date_utc, category, description
- sales:    sale_id, product_id, product_name, quantity, unit_price, total_price,
            tax_rate, discount, sold_at_utc, operator_id, created_at_utc
- alerts:   alert_id, product_id, product_name, alert_type, message,
            created_at_utc, is_read

Stock decrement goes through the `decrement_stock(p_product_id, p_amount)`
Postgres function, which updates `stock = stock - p_amount` in one statement
and raises when the row is missing or the result would be negative.

Live feeds use Supabase Realtime `postgres_changes` subscriptions: every change
event triggers a re-query of the table, so each yielded snapshot is complete.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Awaitable, Callable, List, Mapping, Optional, TypeVar
from uuid import uuid4

from postgrest.exceptions import APIError
from supabase import AsyncClient

from domain.alert import AlertType, StockAlert
from domain.product import Product
from domain.sale import Sale
from domain.time import require_utc_timestamp
from repositories.inventory_store import DuplicateRecordError, InventoryStore, RecordNotFoundError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PRODUCTS_TABLE: str = "products"
_SALES_TABLE: str = "sales"
_ALERTS_TABLE: str = "alerts"
_DECREMENT_STOCK_RPC: str = "decrement_stock"
_UNIQUE_VIOLATION: str = "23505"  # Postgres SQLSTATE


def _to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _row_to_product(row: Mapping[str, Any]) -> Product:
    """Convert a Supabase row into a Product."""

    expiration = row.get("expiration_date_utc")
    return Product(
        product_id=str(row["product_id"]),
        name=str(row["name"]),
        price=Decimal(str(row["price"])),
        stock=int(row["stock"]),
        expiration_date=_parse_utc_datetime(expiration) if expiration is not None else None,
        category=str(row.get("category") or ""),
        description=str(row.get("description") or ""),
    )


def _product_to_row(product: Product, product_id: str) -> dict[str, Any]:
    return {
        "product_id": product_id,
        "name": product.name,
        "price": str(product.price),
        "stock": product.stock,
        "expiration_date_utc": (
            _to_iso_utc(product.expiration_date, name="expiration_date")
            if product.expiration_date is not None
            else None
        ),
        "category": product.category,
        "description": product.description,
    }


def _row_to_sale(row: Mapping[str, Any]) -> Sale:
    """Convert a Supabase row into a Sale."""

    return Sale(
        sale_id=str(row["sale_id"]),
        product_id=str(row["product_id"]),
        product_name=str(row.get("product_name") or ""),
        quantity=int(row["quantity"]),
        unit_price=Decimal(str(row["unit_price"])),
        total_price=Decimal(str(row.get("total_price") or "0")),
        tax_rate=Decimal(str(row.get("tax_rate") or "0")),
        discount=Decimal(str(row.get("discount") or "0")),
        sold_at=_parse_utc_datetime(row["sold_at_utc"]),
        operator_id=str(row["operator_id"]),
    )


def _sale_to_row(sale: Sale, sale_id: str, created_at: datetime) -> dict[str, Any]:
    return {
        "sale_id": sale_id,
        "product_id": sale.product_id,
        "product_name": sale.product_name,
        "quantity": sale.quantity,
        "unit_price": str(sale.unit_price),
        "total_price": str(sale.total_price),
        "tax_rate": str(sale.tax_rate),
        "discount": str(sale.discount),
        "sold_at_utc": _to_iso_utc(sale.sold_at, name="sold_at"),
        "operator_id": sale.operator_id,
        "created_at_utc": created_at.isoformat(),
    }


def _row_to_alert(row: Mapping[str, Any]) -> StockAlert:
    """Convert a Supabase row into a StockAlert."""

    return StockAlert(
        alert_id=str(row["alert_id"]),
        product_id=str(row["product_id"]),
        product_name=str(row.get("product_name") or ""),
        alert_type=AlertType(str(row["alert_type"])),
        message=str(row.get("message") or ""),
        created_at=_parse_utc_datetime(row["created_at_utc"]),
        is_read=bool(row.get("is_read", False)),
    )


def _alert_to_row(alert: StockAlert, alert_id: str) -> dict[str, Any]:
    return {
        "alert_id": alert_id,
        "product_id": alert.product_id,
        "product_name": alert.product_name,
        "alert_type": alert.alert_type.value,
        "message": alert.message,
        "created_at_utc": _to_iso_utc(alert.created_at, name="created_at"),
        "is_read": alert.is_read,
    }


class SupabaseInventoryStore(InventoryStore):
    """InventoryStore backed by Supabase tables, RPC and Realtime."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def _execute(self, query: Any, action: str) -> list[dict[str, Any]]:
        """
        Run a PostgREST query and return its rows.

        Both raised APIErrors and error-carrying responses become StoreError
        (DuplicateRecordError for a unique-key violation).
        """

        try:
            response = await query.execute()
        except APIError as e:
            if e.code == _UNIQUE_VIOLATION:
                raise DuplicateRecordError(f"Failed to {action}: {e.message or e}", cause=e) from e
            raise StoreError(f"Failed to {action}: {e.message or e}", cause=e) from e

        error = getattr(response, "error", None)
        if error:
            raise StoreError(f"Failed to {action}: {error}")

        return getattr(response, "data", None) or []

    # Products

    async def get_product(self, product_id: str) -> Optional[Product]:
        rows = await self._execute(
            self._client.table(_PRODUCTS_TABLE).select("*").eq("product_id", product_id).limit(1),
            "fetch product",
        )
        if not rows:
            return None
        return _row_to_product(rows[0])

    async def list_products(self) -> List[Product]:
        rows = await self._execute(
            self._client.table(_PRODUCTS_TABLE).select("*").order("name"),
            "list products",
        )
        return [_row_to_product(row) for row in rows]

    async def add_product(self, product: Product) -> str:
        product_id = product.product_id or str(uuid4())
        await self._execute(
            self._client.table(_PRODUCTS_TABLE).insert(_product_to_row(product, product_id)),
            "add product",
        )
        return product_id

    async def update_stock(self, product_id: str, new_stock: int) -> None:
        if new_stock < 0:
            raise StoreError(f"Stock cannot be negative (product {product_id}, requested {new_stock})")
        rows = await self._execute(
            self._client.table(_PRODUCTS_TABLE).update({"stock": new_stock}).eq("product_id", product_id),
            "update stock",
        )
        if not rows:
            raise RecordNotFoundError(f"Product not found: {product_id}")

    async def decrement_stock(self, product_id: str, amount: int) -> None:
        if amount <= 0:
            raise StoreError(f"Decrement amount must be positive, got {amount}")
        await self._execute(
            self._client.rpc(_DECREMENT_STOCK_RPC, {"p_product_id": product_id, "p_amount": amount}),
            "decrement stock",
        )

    def stream_products(self) -> AsyncGenerator[List[Product], None]:
        return self._stream(_PRODUCTS_TABLE, self.list_products)

    # Sales

    async def add_sale(self, sale: Sale) -> str:
        sale_id = str(uuid4())
        now = datetime.now(timezone.utc)
        await self._execute(
            self._client.table(_SALES_TABLE).insert(_sale_to_row(sale, sale_id, now)),
            "record sale",
        )
        return sale_id

    async def get_sale(self, sale_id: str) -> Optional[Sale]:
        rows = await self._execute(
            self._client.table(_SALES_TABLE).select("*").eq("sale_id", sale_id).limit(1),
            "get sale",
        )
        if not rows:
            return None
        return _row_to_sale(rows[0])

    async def list_sales(self) -> List[Sale]:
        rows = await self._execute(
            self._client.table(_SALES_TABLE).select("*").order("sold_at_utc", desc=True),
            "list sales",
        )
        return [_row_to_sale(row) for row in rows]

    async def delete_sale(self, sale_id: str) -> None:
        rows = await self._execute(
            self._client.table(_SALES_TABLE).delete().eq("sale_id", sale_id),
            "delete sale",
        )
        if not rows:
            raise RecordNotFoundError(f"Sale not found: {sale_id}")

    def stream_sales(self) -> AsyncGenerator[List[Sale], None]:
        return self._stream(_SALES_TABLE, self.list_sales)

    # Alerts

    async def add_alert(self, alert: StockAlert) -> str:
        alert_id = str(uuid4())
        await self._execute(
            self._client.table(_ALERTS_TABLE).insert(_alert_to_row(alert, alert_id)),
            "add alert",
        )
        return alert_id

    async def list_alerts(self) -> List[StockAlert]:
        rows = await self._execute(
            self._client.table(_ALERTS_TABLE).select("*").order("created_at_utc", desc=True),
            "list alerts",
        )
        return [_row_to_alert(row) for row in rows]

    async def mark_alert_read(self, alert_id: str) -> None:
        rows = await self._execute(
            self._client.table(_ALERTS_TABLE).update({"is_read": True}).eq("alert_id", alert_id),
            "mark alert read",
        )
        if not rows:
            raise RecordNotFoundError(f"Alert not found: {alert_id}")

    async def delete_alert(self, alert_id: str) -> None:
        rows = await self._execute(
            self._client.table(_ALERTS_TABLE).delete().eq("alert_id", alert_id),
            "delete alert",
        )
        if not rows:
            raise RecordNotFoundError(f"Alert not found: {alert_id}")

    def stream_alerts(self) -> AsyncGenerator[List[StockAlert], None]:
        return self._stream(_ALERTS_TABLE, self.list_alerts)

    # Live feeds

    async def _stream(self, table: str, snapshot: Callable[[], Awaitable[List[T]]]) -> AsyncGenerator[List[T], None]:
        changes: "asyncio.Queue[None]" = asyncio.Queue()
        channel = self._client.channel(f"{table}-changes-{uuid4()}")
        channel.on_postgres_changes(
            "*",
            schema="public",
            table=table,
            callback=lambda _payload: changes.put_nowait(None),
        )
        await channel.subscribe()
        logger.debug("Subscribed to realtime changes", extra={"table": table})
        try:
            yield await snapshot()
            while True:
                await changes.get()
                while not changes.empty():
                    changes.get_nowait()
                yield await snapshot()
        finally:
            await self._client.remove_channel(channel)
            logger.debug("Unsubscribed from realtime changes", extra={"table": table})


__all__ = ["SupabaseInventoryStore"]
