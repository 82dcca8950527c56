"""
Sales API Endpoints.

Endpoints for registering sales, browsing sales history, calculating change
and following registration outcomes live.
"""

from __future__ import annotations

import json
from datetime import timezone
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import StreamingResponse

from api.dependencies import AppServices, get_services
from api.models import (
    ChangeRequest,
    ChangeResponse,
    ErrorResponse,
    RegistrationResponse,
    SaleListResponse,
    SaleRequest,
    SaleResponse,
)
from domain.change import calculate_change
from domain.sale import Sale
from repositories.inventory_store import RecordNotFoundError, StoreError
from services.notification_service import SaleRegistered
from services.sale_registration_service import RegistrationErrorKind

router = APIRouter()

_STATUS_BY_ERROR: Dict[RegistrationErrorKind, int] = {
    RegistrationErrorKind.INVALID_SALE_DATA: 422,
    RegistrationErrorKind.PRODUCT_NOT_FOUND: 404,
    RegistrationErrorKind.INSUFFICIENT_STOCK: 409,
    RegistrationErrorKind.PERSISTENCE_FAILURE: 502,
    RegistrationErrorKind.PARTIAL_REGISTRATION: 202,
}


@router.post(
    "/sales",
    response_model=RegistrationResponse,
    status_code=201,
    summary="Register Sale",
    description="Validate a sale, check stock, record it and decrement the product's stock."
)
async def register_sale(
    request: SaleRequest,
    response: Response,
    services: AppServices = Depends(get_services),
):
    """
    Register a sale.

    **Process:**
    1. Validates the sale (product, quantity, unit price, operator)
    2. Checks the product's current stock
    3. Computes total price and applies the configured tax rate
    4. Records the sale
    5. Decrements the product's stock

    **Status codes:**
    - 201: sale registered
    - 202: sale recorded but stock could not be decremented (PARTIAL_REGISTRATION)
    - 404: product not found
    - 409: insufficient stock
    - 422: invalid sale data
    - 502: the store rejected the write

    **Example request:**
    ```json
    {
      "product_id": "prod-001",
      "quantity": 2,
      "unit_price": "10.00",
      "operator_id": "user_123"
    }
    ```
    """
    sold_at = request.sold_at or services.clock()
    if sold_at.tzinfo is None:
        sold_at = sold_at.replace(tzinfo=timezone.utc)
    else:
        sold_at = sold_at.astimezone(timezone.utc)

    candidate = Sale(
        product_id=request.product_id,
        product_name=request.product_name,
        quantity=request.quantity,
        unit_price=request.unit_price,
        discount=request.discount,
        operator_id=request.operator_id,
        sold_at=sold_at,
    )

    result = await services.registration.register_sale(candidate)

    if result.error_kind is not None:
        response.status_code = _STATUS_BY_ERROR[result.error_kind]

    return RegistrationResponse(
        success=result.success,
        sale_id=result.sale_id,
        error_kind=result.error_kind.value if result.error_kind else None,
        detail=result.detail or None,
        sale=SaleResponse.from_domain(result.sale) if result.sale is not None else None,
    )


@router.get(
    "/sales",
    response_model=SaleListResponse,
    summary="List Sales",
    description="Sales history, newest first."
)
async def list_sales(services: AppServices = Depends(get_services)):
    try:
        sales = await services.store.list_sales()
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to list sales: {str(e)}")

    return SaleListResponse(
        items=[SaleResponse.from_domain(s) for s in sales],
        total_count=len(sales),
    )


@router.post(
    "/sales/change",
    response_model=ChangeResponse,
    summary="Calculate Change",
    description="Change owed to the customer; 0 when the amount received does not cover the total."
)
def calculate_sale_change(request: ChangeRequest):
    return ChangeResponse(
        total=request.total,
        received=request.received,
        change=calculate_change(request.total, request.received),
    )


@router.get(
    "/sales/{sale_id}",
    response_model=SaleResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get Sale"
)
async def get_sale(sale_id: str, services: AppServices = Depends(get_services)):
    try:
        sale = await services.store.get_sale(sale_id)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to get sale: {str(e)}")

    if sale is None:
        raise HTTPException(status_code=404, detail=f"Sale not found: {sale_id}")

    return SaleResponse.from_domain(sale)


@router.delete(
    "/sales/{sale_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
    summary="Delete Sale",
    description="Remove a sale record. Stock is not restored."
)
async def delete_sale(sale_id: str, services: AppServices = Depends(get_services)):
    try:
        await services.store.delete_sale(sale_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail=f"Sale not found: {sale_id}")
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to delete sale: {str(e)}")

    return Response(status_code=204)


@router.get(
    "/notifications/stream",
    summary="Registration Outcome Feed",
    description="Server-sent events, one per sale registration attempt. Messages are delivered at most once."
)
async def stream_notifications(services: AppServices = Depends(get_services)):
    async def events():
        async for notification in services.notifications.listen():
            if isinstance(notification, SaleRegistered):
                payload = {"type": "SaleRegistered", "sale_id": notification.sale_id}
            else:
                payload = {
                    "type": "RegistrationFailed",
                    "error_kind": notification.error_kind,
                    "detail": notification.detail,
                }
            yield f"data: {json.dumps(payload)}\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")
