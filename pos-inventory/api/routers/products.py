"""
Products API Endpoints.

Endpoints for browsing the catalogue, adding products, correcting stock and
checking availability before a sale.
"""

from __future__ import annotations

from datetime import timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import AppServices, get_services
from api.models import (
    AvailabilityResponse,
    ErrorResponse,
    ProductListResponse,
    ProductRequest,
    ProductResponse,
    StockUpdateRequest,
)
from domain.product import Product
from repositories.inventory_store import DuplicateRecordError, RecordNotFoundError, StoreError

router = APIRouter()


@router.get(
    "/products",
    response_model=ProductListResponse,
    summary="List Products",
    description="Every product with its current stock."
)
async def list_products(
    in_stock_only: bool = Query(False, description="Only return products with stock > 0"),
    services: AppServices = Depends(get_services),
):
    try:
        products = await services.store.list_products()
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to list products: {str(e)}")

    if in_stock_only:
        products = [p for p in products if p.is_in_stock()]

    return ProductListResponse(
        items=[ProductResponse.from_domain(p) for p in products],
        total_count=len(products),
    )


@router.post(
    "/products",
    response_model=ProductResponse,
    status_code=201,
    responses={409: {"model": ErrorResponse}},
    summary="Add Product"
)
async def add_product(request: ProductRequest, services: AppServices = Depends(get_services)):
    expiration = request.expiration_date
    if expiration is not None:
        expiration = (
            expiration.replace(tzinfo=timezone.utc)
            if expiration.tzinfo is None
            else expiration.astimezone(timezone.utc)
        )

    product = Product(
        product_id=request.product_id or "",
        name=request.name,
        price=request.price,
        stock=request.stock,
        expiration_date=expiration,
        category=request.category,
        description=request.description,
    )

    try:
        product_id = await services.store.add_product(product)
        stored = await services.store.get_product(product_id)
    except DuplicateRecordError:
        raise HTTPException(status_code=409, detail=f"Product already exists: {product.product_id}")
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to add product: {str(e)}")

    if stored is None:
        raise HTTPException(status_code=502, detail=f"Product {product_id} was not readable after insert")

    return ProductResponse.from_domain(stored)


@router.put(
    "/products/{product_id}/stock",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Set Stock",
    description="Operator stock correction (e.g. after a stock count or a delivery)."
)
async def update_stock(
    product_id: str,
    request: StockUpdateRequest,
    services: AppServices = Depends(get_services),
):
    try:
        await services.store.update_stock(product_id, request.stock)
        product = await services.store.get_product(product_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail=f"Product not found: {product_id}")
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to update stock: {str(e)}")

    if product is None:
        raise HTTPException(status_code=404, detail=f"Product not found: {product_id}")

    return ProductResponse.from_domain(product)


@router.get(
    "/products/{product_id}/availability",
    response_model=AvailabilityResponse,
    summary="Check Availability",
    description="Whether the requested quantity can be sold from current stock."
)
async def check_availability(
    product_id: str,
    quantity: int = Query(..., ge=1, description="Quantity the customer wants to buy"),
    services: AppServices = Depends(get_services),
):
    try:
        check = await services.stock_checker.check_availability(product_id, quantity)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to check availability: {str(e)}")

    return AvailabilityResponse.from_check(product_id, check)
