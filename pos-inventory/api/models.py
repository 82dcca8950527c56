"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from domain.alert import StockAlert
from domain.product import Product
from domain.sale import Sale
from services.dashboard_service import DashboardSummary
from services.stock_checker import StockCheck


# ============================================================================
# Sale Models
# ============================================================================

class SaleRequest(BaseModel):
    """
    Candidate sale submitted from the checkout screen.

    Field values are not range-checked here: the registration flow validates
    them and answers INVALID_SALE_DATA for bad input.
    """
    product_id: str
    quantity: int
    unit_price: Decimal
    operator_id: str
    product_name: str = ""
    discount: Decimal = Decimal("0")
    sold_at: Optional[datetime] = Field(
        None,
        description="Sale time; defaults to now. Naive values are read as UTC."
    )

    class Config:
        json_schema_extra = {
            "example": {
                "product_id": "prod-001",
                "quantity": 2,
                "unit_price": "10.00",
                "operator_id": "user_123",
                "product_name": "Coffee 500g"
            }
        }


class SaleResponse(BaseModel):
    """A registered sale."""
    sale_id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    tax_rate: Decimal
    total_with_tax: Decimal
    discount: Decimal
    sold_at: datetime
    operator_id: str

    @classmethod
    def from_domain(cls, sale: Sale) -> "SaleResponse":
        return cls(
            sale_id=sale.sale_id,
            product_id=sale.product_id,
            product_name=sale.product_name,
            quantity=sale.quantity,
            unit_price=sale.unit_price,
            total_price=sale.total_price,
            tax_rate=sale.tax_rate,
            total_with_tax=sale.total_with_tax(),
            discount=sale.discount,
            sold_at=sale.sold_at,
            operator_id=sale.operator_id,
        )


class RegistrationResponse(BaseModel):
    """Outcome of a sale registration attempt."""
    success: bool
    sale_id: Optional[str] = None
    error_kind: Optional[str] = None
    detail: Optional[str] = None
    sale: Optional[SaleResponse] = None

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "sale_id": "6f1c2d1e-3b7a-4d1e-9a55-0c6b8f0e2a10",
                "error_kind": None,
                "detail": None,
                "sale": None
            }
        }


class SaleListResponse(BaseModel):
    items: List[SaleResponse]
    total_count: int


class ChangeRequest(BaseModel):
    """Amount due and amount handed over by the customer."""
    total: Decimal
    received: Decimal

    class Config:
        json_schema_extra = {
            "example": {
                "total": "50.00",
                "received": "70.00"
            }
        }


class ChangeResponse(BaseModel):
    total: Decimal
    received: Decimal
    change: Decimal


# ============================================================================
# Product Models
# ============================================================================

class ProductRequest(BaseModel):
    """New catalogue entry."""
    product_id: Optional[str] = Field(None, description="Leave empty to let the store assign one")
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    expiration_date: Optional[datetime] = None
    category: str = ""
    description: str = ""

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Coffee 500g",
                "price": "10.00",
                "stock": 10,
                "expiration_date": "2026-12-31T00:00:00Z",
                "category": "Groceries"
            }
        }


class ProductResponse(BaseModel):
    product_id: str
    name: str
    price: Decimal
    stock: int
    expiration_date: Optional[datetime] = None
    category: str
    description: str
    is_in_stock: bool

    @classmethod
    def from_domain(cls, product: Product) -> "ProductResponse":
        return cls(
            product_id=product.product_id,
            name=product.name,
            price=product.price,
            stock=product.stock,
            expiration_date=product.expiration_date,
            category=product.category,
            description=product.description,
            is_in_stock=product.is_in_stock(),
        )


class ProductListResponse(BaseModel):
    items: List[ProductResponse]
    total_count: int


class StockUpdateRequest(BaseModel):
    stock: int = Field(..., ge=0)


class AvailabilityResponse(BaseModel):
    product_id: str
    requested_quantity: int
    available: bool
    outcome: str
    available_quantity: int

    @classmethod
    def from_check(cls, product_id: str, check: StockCheck) -> "AvailabilityResponse":
        return cls(
            product_id=product_id,
            requested_quantity=check.requested_quantity,
            available=check.available,
            outcome=check.outcome.value,
            available_quantity=check.available_quantity,
        )


# ============================================================================
# Alert Models
# ============================================================================

class AlertResponse(BaseModel):
    alert_id: str
    product_id: str
    product_name: str
    alert_type: str
    message: str
    created_at: datetime
    is_read: bool

    @classmethod
    def from_domain(cls, alert: StockAlert) -> "AlertResponse":
        return cls(
            alert_id=alert.alert_id,
            product_id=alert.product_id,
            product_name=alert.product_name,
            alert_type=alert.alert_type.value,
            message=alert.message,
            created_at=alert.created_at,
            is_read=alert.is_read,
        )


class AlertListResponse(BaseModel):
    items: List[AlertResponse]
    total_count: int
    unread_count: int


# ============================================================================
# Dashboard Models
# ============================================================================

class DashboardResponse(BaseModel):
    as_of: datetime
    product_count: int
    out_of_stock_products: List[ProductResponse]
    low_stock_products: List[ProductResponse]
    expiring_products: List[ProductResponse]
    unread_alert_count: int
    sales_today: int
    revenue_today: Decimal
    revenue_today_with_tax: Decimal

    @classmethod
    def from_summary(cls, summary: DashboardSummary) -> "DashboardResponse":
        return cls(
            as_of=summary.as_of,
            product_count=summary.product_count,
            out_of_stock_products=[ProductResponse.from_domain(p) for p in summary.out_of_stock_products],
            low_stock_products=[ProductResponse.from_domain(p) for p in summary.low_stock_products],
            expiring_products=[ProductResponse.from_domain(p) for p in summary.expiring_products],
            unread_alert_count=summary.unread_alert_count,
            sales_today=summary.sales_today,
            revenue_today=summary.revenue_today,
            revenue_today_with_tax=summary.revenue_today_with_tax,
        )


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Not found",
                "detail": "Product not found: prod-404",
                "status_code": 404
            }
        }
