"""
Alerts API Endpoints.

Endpoints for listing, recomputing, reading and deleting stock alerts, plus a
live alert feed.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import StreamingResponse

from api.dependencies import AppServices, get_services
from api.models import AlertListResponse, AlertResponse, ErrorResponse
from repositories.inventory_store import RecordNotFoundError, StoreError

router = APIRouter()


@router.get(
    "/alerts",
    response_model=AlertListResponse,
    summary="List Alerts",
    description="Stock alerts, newest first."
)
async def list_alerts(
    unread_only: bool = Query(False, description="Only return alerts not yet marked as read"),
    services: AppServices = Depends(get_services),
):
    try:
        alerts = await services.alerts.list_alerts()
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to list alerts: {str(e)}")

    unread_count = sum(1 for a in alerts if not a.is_read)
    if unread_only:
        alerts = [a for a in alerts if not a.is_read]

    return AlertListResponse(
        items=[AlertResponse.from_domain(a) for a in alerts],
        total_count=len(alerts),
        unread_count=unread_count,
    )


@router.post(
    "/alerts/recompute",
    response_model=AlertListResponse,
    summary="Recompute Alerts",
    description="Classify every product and append the resulting alerts. Earlier alerts are left untouched."
)
async def recompute_alerts(services: AppServices = Depends(get_services)):
    """
    Run the alert engine over the current products.

    **Classification (first match wins):**
    1. stock == 0 -> OUT_OF_STOCK
    2. already expired -> EXPIRED
    3. expires within the configured window -> EXPIRING_SOON
    4. stock at or below the low-stock threshold -> LOW_STOCK

    Returns only the alerts created by this run.
    """
    try:
        created = await services.alerts.recompute_from_store()
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to recompute alerts: {str(e)}")

    return AlertListResponse(
        items=[AlertResponse.from_domain(a) for a in created],
        total_count=len(created),
        unread_count=len(created),
    )


@router.get(
    "/alerts/stream",
    summary="Live Alert Feed",
    description="Server-sent events carrying the full alert list after every change."
)
async def stream_alerts(services: AppServices = Depends(get_services)):
    async def events():
        feed = services.alerts.stream_alerts()
        try:
            async for alerts in feed:
                payload = [AlertResponse.from_domain(a).model_dump(mode="json") for a in alerts]
                yield f"data: {json.dumps(payload)}\n\n"
        finally:
            await feed.aclose()

    return StreamingResponse(events(), media_type="text/event-stream")


@router.post(
    "/alerts/{alert_id}/read",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
    summary="Mark Alert Read",
    description="Idempotent: marking an already-read alert succeeds without changes."
)
async def mark_alert_read(alert_id: str, services: AppServices = Depends(get_services)):
    try:
        await services.alerts.mark_alert_read(alert_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail=f"Alert not found: {alert_id}")
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to mark alert read: {str(e)}")

    return Response(status_code=204)


@router.delete(
    "/alerts/{alert_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
    summary="Delete Alert"
)
async def delete_alert(alert_id: str, services: AppServices = Depends(get_services)):
    try:
        await services.alerts.delete_alert(alert_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail=f"Alert not found: {alert_id}")
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to delete alert: {str(e)}")

    return Response(status_code=204)
