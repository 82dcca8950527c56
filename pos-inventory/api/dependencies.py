"""
Service wiring for the API.

Builds the store and the services from Settings once per application and hands
them to route functions through FastAPI dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from config.settings import Settings
from domain.time import Clock, utc_now
from repositories.client import create_store
from repositories.inventory_store import InventoryStore
from services.alert_service import AlertEngine
from services.notification_service import NotificationChannel
from services.sale_registration_service import SaleRegistrationService
from services.stock_checker import StockChecker


@dataclass
class AppServices:
    settings: Settings
    store: InventoryStore
    registration: SaleRegistrationService
    stock_checker: StockChecker
    alerts: AlertEngine
    notifications: NotificationChannel
    clock: Clock = utc_now


async def build_services(
    settings: Settings,
    store: Optional[InventoryStore] = None,
    clock: Clock = utc_now,
) -> AppServices:
    """Create the configured store (unless one is given) and every service on top of it."""

    if store is None:
        store = await create_store(settings)

    notifications = NotificationChannel(max_pending=settings.notification_queue_size)

    return AppServices(
        settings=settings,
        store=store,
        registration=SaleRegistrationService(
            store,
            tax_rate_percent=settings.tax_rate_percent,
            notifier=notifications,
        ),
        stock_checker=StockChecker(store),
        alerts=AlertEngine(
            store,
            days_ahead=settings.expiry_window_days,
            low_stock_threshold=settings.low_stock_threshold,
            clock=clock,
        ),
        notifications=notifications,
        clock=clock,
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


__all__ = ["AppServices", "build_services", "get_services"]
