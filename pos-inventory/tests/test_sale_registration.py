"""
Tests for `services/sale_registration_service.py`.

Covers contract rules:
- Invalid sales are rejected before any store access.
- Unknown products and insufficient stock are rejected without writes.
- A successful registration records total_price = quantity * unit_price and
  decrements stock by quantity.
- A failed sale write leaves stock untouched (PERSISTENCE_FAILURE).
- A failed stock decrement after the sale was written is PARTIAL_REGISTRATION
  with the sale id attached; the sale is not rolled back.
- Cancelling before the sale write leaves no trace; once the write started the
  sequence completes.
- Each attempt publishes exactly one notification, including a sale whose
  caller was cancelled after the write started.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from conftest import ScriptedStore, make_product, make_sale
from services.notification_service import NotificationChannel, RegistrationFailed, SaleRegistered
from services.sale_registration_service import (
    DEFAULT_TAX_RATE_PERCENT,
    RegistrationErrorKind,
    SaleRegistrationService,
)


def _stock(store, product_id: str = "prod-001") -> int:
    return asyncio.run(store.get_product(product_id)).stock


def test_successful_registration_records_sale_and_decrements_stock(store) -> None:
    """stock=10, price=10.0, quantity=2 -> success, total 20.0, stock 8."""

    service = SaleRegistrationService(store)

    result = asyncio.run(service.register_sale(make_sale(quantity=2, unit_price="10.0")))

    assert result.success is True
    assert result.error_kind is None
    assert result.sale_id
    assert result.sale.total_price == Decimal("20.0")
    assert result.sale.tax_rate == DEFAULT_TAX_RATE_PERCENT
    assert _stock(store) == 8

    stored = asyncio.run(store.get_sale(result.sale_id))
    assert stored is not None
    assert stored.total_price == Decimal("20.0")
    assert stored.sale_id == result.sale_id


def test_insufficient_stock_leaves_store_untouched(scripted_store) -> None:
    """stock=10, quantity=15 -> INSUFFICIENT_STOCK, stock stays 10."""

    service = SaleRegistrationService(scripted_store)

    result = asyncio.run(service.register_sale(make_sale(quantity=15)))

    assert result.error_kind is RegistrationErrorKind.INSUFFICIENT_STOCK
    assert result.sale_id is None
    assert result.is_persisted is False
    assert "Available: 10" in result.detail
    assert scripted_store.writes == []
    assert _stock(scripted_store) == 10


def test_invalid_sale_never_touches_the_store(scripted_store) -> None:
    """product_id="" and quantity=0 -> INVALID_SALE_DATA before any store access."""

    service = SaleRegistrationService(scripted_store)

    result = asyncio.run(service.register_sale(make_sale(product_id="", quantity=0)))

    assert result.error_kind is RegistrationErrorKind.INVALID_SALE_DATA
    assert scripted_store.calls == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"quantity": 0},
        {"quantity": -1},
        {"unit_price": "0"},
        {"unit_price": "-10"},
        {"product_id": ""},
        {"operator_id": ""},
        {"product_id": 42},
        {"operator_id": 5},
    ],
)
def test_each_invalid_field_is_rejected_without_store_access(scripted_store, overrides) -> None:
    service = SaleRegistrationService(scripted_store)

    result = asyncio.run(service.register_sale(make_sale(**overrides)))

    assert result.error_kind is RegistrationErrorKind.INVALID_SALE_DATA
    assert scripted_store.calls == []


def test_unknown_product_is_rejected(scripted_store) -> None:
    service = SaleRegistrationService(scripted_store)

    result = asyncio.run(service.register_sale(make_sale(product_id="prod-404")))

    assert result.error_kind is RegistrationErrorKind.PRODUCT_NOT_FOUND
    assert scripted_store.writes == []


def test_selling_the_whole_stock_is_allowed(store) -> None:
    service = SaleRegistrationService(store)

    result = asyncio.run(service.register_sale(make_sale(quantity=10)))

    assert result.success is True
    assert _stock(store) == 0


@pytest.mark.parametrize(
    "quantity, unit_price, expected_total",
    [
        (3, "0.10", Decimal("0.30")),
        (7, "19.99", Decimal("139.93")),
        (1, "0.01", Decimal("0.01")),
    ],
)
def test_total_price_is_exact(quantity, unit_price, expected_total) -> None:
    store = ScriptedStore([make_product(stock=100)])
    service = SaleRegistrationService(store)

    result = asyncio.run(service.register_sale(make_sale(quantity=quantity, unit_price=unit_price)))

    assert result.sale.total_price == expected_total
    assert _stock(store) == 100 - quantity


def test_configured_tax_rate_is_fixed_on_the_sale(store) -> None:
    service = SaleRegistrationService(store, tax_rate_percent=Decimal("12.5"))

    result = asyncio.run(service.register_sale(make_sale(quantity=2, unit_price="10.00")))

    assert result.sale.tax_rate == Decimal("12.5")
    assert result.sale.total_with_tax() == Decimal("22.500")


def test_store_read_failure_is_persistence_failure(scripted_store) -> None:
    scripted_store.fail_get_product = True
    service = SaleRegistrationService(scripted_store)

    result = asyncio.run(service.register_sale(make_sale()))

    assert result.error_kind is RegistrationErrorKind.PERSISTENCE_FAILURE
    assert result.cause is not None
    assert scripted_store.writes == []


def test_sale_write_failure_leaves_stock_untouched(scripted_store) -> None:
    scripted_store.fail_add_sale = True
    service = SaleRegistrationService(scripted_store)

    result = asyncio.run(service.register_sale(make_sale()))

    assert result.error_kind is RegistrationErrorKind.PERSISTENCE_FAILURE
    assert result.sale_id is None
    assert "decrement_stock" not in scripted_store.calls
    assert _stock(scripted_store) == 10


def test_decrement_failure_is_partial_registration(scripted_store) -> None:
    """The sale stays recorded and its id is reported for reconciliation."""

    scripted_store.fail_decrement = True
    service = SaleRegistrationService(scripted_store)

    result = asyncio.run(service.register_sale(make_sale(quantity=2)))

    assert result.error_kind is RegistrationErrorKind.PARTIAL_REGISTRATION
    assert result.success is False
    assert result.is_persisted is True
    assert result.sale is not None and result.sale.sale_id == result.sale_id
    assert result.sale_id in result.detail
    assert asyncio.run(scripted_store.get_sale(result.sale_id)) is not None
    assert _stock(scripted_store) == 10


def test_sale_is_written_before_stock_is_decremented(scripted_store) -> None:
    service = SaleRegistrationService(scripted_store)

    asyncio.run(service.register_sale(make_sale()))

    assert scripted_store.calls == ["get_product", "add_sale", "decrement_stock"]


def test_concurrent_oversell_surfaces_as_partial_registration() -> None:
    """Two sales of 6 against stock 10 both pass the check; stock never goes negative."""

    store = ScriptedStore([make_product(stock=10)])
    service = SaleRegistrationService(store)

    async def scenario():
        return await asyncio.gather(
            service.register_sale(make_sale(quantity=6)),
            service.register_sale(make_sale(quantity=6)),
        )

    results = asyncio.run(scenario())

    kinds = sorted((r.error_kind.value if r.error_kind else "OK") for r in results)
    assert kinds == ["OK", "PARTIAL_REGISTRATION"]
    assert _stock(store) == 4
    assert len(asyncio.run(store.list_sales())) == 2


def test_cancel_before_sale_write_leaves_no_trace(scripted_store) -> None:
    scripted_store.get_product_gate = asyncio.Event()
    scripted_store.get_product_entered = asyncio.Event()
    service = SaleRegistrationService(scripted_store)

    async def scenario():
        task = asyncio.create_task(service.register_sale(make_sale()))
        await scripted_store.get_product_entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        scripted_store.get_product_gate.set()
        await asyncio.sleep(0)

    asyncio.run(scenario())

    assert scripted_store.writes == []
    assert asyncio.run(scripted_store.list_sales()) == []


def test_cancel_after_sale_write_started_still_completes(scripted_store) -> None:
    scripted_store.add_sale_gate = asyncio.Event()
    scripted_store.add_sale_entered = asyncio.Event()
    service = SaleRegistrationService(scripted_store)

    async def scenario():
        task = asyncio.create_task(service.register_sale(make_sale(quantity=2)))
        await scripted_store.add_sale_entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        scripted_store.add_sale_gate.set()
        for _ in range(100):
            if "decrement_stock" in scripted_store.calls:
                break
            await asyncio.sleep(0.01)

    asyncio.run(scenario())

    assert len(asyncio.run(scripted_store.list_sales())) == 1
    assert _stock(scripted_store) == 8


def test_success_publishes_sale_registered(store) -> None:
    channel = NotificationChannel()
    service = SaleRegistrationService(store, notifier=channel)

    result = asyncio.run(service.register_sale(make_sale()))

    assert channel.receive_nowait() == SaleRegistered(sale_id=result.sale_id)
    assert channel.receive_nowait() is None


def test_failure_publishes_registration_failed(store) -> None:
    channel = NotificationChannel()
    service = SaleRegistrationService(store, notifier=channel)

    asyncio.run(service.register_sale(make_sale(quantity=15)))

    message = channel.receive_nowait()
    assert isinstance(message, RegistrationFailed)
    assert message.error_kind == "INSUFFICIENT_STOCK"
    assert channel.receive_nowait() is None


def test_partial_registration_is_reported_as_failure(scripted_store) -> None:
    scripted_store.fail_decrement = True
    channel = NotificationChannel()
    service = SaleRegistrationService(scripted_store, notifier=channel)

    asyncio.run(service.register_sale(make_sale()))

    message = channel.receive_nowait()
    assert isinstance(message, RegistrationFailed)
    assert message.error_kind == "PARTIAL_REGISTRATION"


def test_sale_completed_after_cancellation_is_still_announced(scripted_store) -> None:
    """The shielded write publishes its outcome even though the caller is gone."""

    scripted_store.add_sale_gate = asyncio.Event()
    scripted_store.add_sale_entered = asyncio.Event()
    channel = NotificationChannel()
    service = SaleRegistrationService(scripted_store, notifier=channel)

    async def scenario():
        task = asyncio.create_task(service.register_sale(make_sale(quantity=2)))
        await scripted_store.add_sale_entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        scripted_store.add_sale_gate.set()
        return await channel.receive(timeout=1)

    message = asyncio.run(scenario())

    sales = asyncio.run(scripted_store.list_sales())
    assert message == SaleRegistered(sale_id=sales[0].sale_id)
    assert channel.receive_nowait() is None


def test_attempt_cancelled_before_the_write_announces_nothing(scripted_store) -> None:
    scripted_store.get_product_gate = asyncio.Event()
    scripted_store.get_product_entered = asyncio.Event()
    channel = NotificationChannel()
    service = SaleRegistrationService(scripted_store, notifier=channel)

    async def scenario():
        task = asyncio.create_task(service.register_sale(make_sale()))
        await scripted_store.get_product_entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert channel.receive_nowait() is None
