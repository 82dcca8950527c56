"""
Dashboard API Endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import AppServices, get_services
from api.models import DashboardResponse
from repositories.inventory_store import StoreError
from services.dashboard_service import build_dashboard

router = APIRouter()


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Dashboard Summary",
    description="Stock status, unread alerts and today's sales (UTC day)."
)
async def get_dashboard(services: AppServices = Depends(get_services)):
    try:
        products = await services.store.list_products()
        sales = await services.store.list_sales()
        alerts = await services.store.list_alerts()
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to load dashboard: {str(e)}")

    summary = build_dashboard(
        products,
        sales,
        alerts,
        as_of=services.clock(),
        days_ahead=services.settings.expiry_window_days,
        low_stock_threshold=services.settings.low_stock_threshold,
    )
    return DashboardResponse.from_summary(summary)
