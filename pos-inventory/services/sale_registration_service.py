"""
Sale registration service.

Handles:
- Validation of the candidate sale before any store access
- Availability check against the product's current stock
- Finalizing totals and the tax rate fixed at registration
- Persisting the sale, then decrementing stock

Failure semantics:
- Steps run strictly in order; a failed step stops the flow.
- A sale is never rolled back. When the stock decrement fails after the sale
  was persisted, the result is PARTIAL_REGISTRATION with the sale_id attached
  so the caller can reconcile inventory.
- Once persistence starts the write sequence (and its notification) is
  shielded from cancellation; cancelling earlier leaves no trace in the store.
- Concurrent registrations for the same product are not isolated from each
  other: the availability check can be outdated by the time stock is
  decremented. The store refuses to go below zero, so such a race surfaces as
  PARTIAL_REGISTRATION.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from domain.sale import Sale, validate_sale
from repositories.inventory_store import InventoryStore
from services.notification_service import NotificationChannel
from services.stock_checker import StockCheckOutcome, StockChecker

logger = logging.getLogger(__name__)

DEFAULT_TAX_RATE_PERCENT = Decimal("23.0")  # 5% ISS + 18% ICMS


class RegistrationErrorKind(str, Enum):
    INVALID_SALE_DATA = "INVALID_SALE_DATA"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    PARTIAL_REGISTRATION = "PARTIAL_REGISTRATION"


@dataclass(frozen=True, slots=True)
class RegistrationResult:
    """
    Result of a registration attempt.

    sale_id: id assigned by the store (set whenever the sale was persisted,
             including PARTIAL_REGISTRATION)
    error_kind: None on success
    detail: human-readable explanation of a failure
    cause: underlying store exception for PERSISTENCE_FAILURE / PARTIAL_REGISTRATION
    sale: the finalized sale as persisted (None when nothing was persisted)
    """

    sale_id: Optional[str]
    error_kind: Optional[RegistrationErrorKind] = None
    detail: str = ""
    cause: Optional[BaseException] = None
    sale: Optional[Sale] = None

    @property
    def success(self) -> bool:
        return self.error_kind is None

    @property
    def is_persisted(self) -> bool:
        return self.sale_id is not None


def _failure(
    kind: RegistrationErrorKind,
    detail: str,
    cause: Optional[BaseException] = None,
) -> RegistrationResult:
    return RegistrationResult(sale_id=None, error_kind=kind, detail=detail, cause=cause)


class SaleRegistrationService:
    def __init__(
        self,
        store: InventoryStore,
        tax_rate_percent: Decimal = DEFAULT_TAX_RATE_PERCENT,
        notifier: Optional[NotificationChannel] = None,
    ) -> None:
        self._store = store
        self._stock_checker = StockChecker(store)
        self._tax_rate_percent = tax_rate_percent
        self._notifier = notifier

    @property
    def tax_rate_percent(self) -> Decimal:
        return self._tax_rate_percent

    async def register_sale(self, candidate: Sale) -> RegistrationResult:
        """
        Register a sale and apply its inventory effect.

        Process:
        1. Validate the candidate (INVALID_SALE_DATA, store untouched)
        2. Check availability (PRODUCT_NOT_FOUND / INSUFFICIENT_STOCK)
        3. Finalize: total_price = quantity * unit_price, tax_rate fixed
        4. Persist the sale (PERSISTENCE_FAILURE, no stock change)
        5. Decrement stock (PARTIAL_REGISTRATION when it fails)

        Every attempt publishes exactly one notification when a
        NotificationChannel is configured, including a sale whose caller was
        cancelled after the write started. An attempt cancelled before that
        publishes nothing.

        Example:
            result = await service.register_sale(sale)
            if result.success:
                print(f"Registered sale {result.sale_id}")
            else:
                print(f"{result.error_kind.value}: {result.detail}")
        """

        finalized, rejection = await self._prepare(candidate)
        if rejection is not None:
            self._notify(rejection)
            return rejection

        # 4-5. Persist, decrement and notify; not cancellable once started
        return await asyncio.shield(self._commit(finalized))

    async def _prepare(self, candidate: Sale) -> Tuple[Optional[Sale], Optional[RegistrationResult]]:
        """Steps 1-3: the finalized sale, or the rejection that stops the flow."""

        # 1. Validate
        if not validate_sale(candidate):
            logger.warning(
                "Rejected invalid sale",
                extra={"product_id": candidate.product_id, "quantity": candidate.quantity},
            )
            return None, _failure(RegistrationErrorKind.INVALID_SALE_DATA, "Invalid sale data")

        # 2. Check availability
        try:
            check = await self._stock_checker.check_availability(candidate.product_id, candidate.quantity)
        except Exception as e:
            logger.error(
                "Stock check failed",
                extra={"product_id": candidate.product_id, "error": str(e)},
            )
            return None, _failure(
                RegistrationErrorKind.PERSISTENCE_FAILURE,
                f"Failed to read product {candidate.product_id}: {e}",
                cause=e,
            )

        if check.outcome is StockCheckOutcome.NOT_FOUND:
            logger.warning("Product not found for sale", extra={"product_id": candidate.product_id})
            return None, _failure(
                RegistrationErrorKind.PRODUCT_NOT_FOUND,
                f"Product not found: {candidate.product_id}",
            )

        if check.outcome is StockCheckOutcome.INSUFFICIENT_STOCK:
            logger.warning(
                "Insufficient stock for sale",
                extra={
                    "product_id": candidate.product_id,
                    "requested": candidate.quantity,
                    "available": check.available_quantity,
                },
            )
            return None, _failure(
                RegistrationErrorKind.INSUFFICIENT_STOCK,
                f"Insufficient stock for product {candidate.product_id}. "
                f"Requested: {candidate.quantity}, Available: {check.available_quantity}",
            )

        # 3. Finalize totals
        return candidate.finalized(self._tax_rate_percent), None

    async def _commit(self, finalized: Sale) -> RegistrationResult:
        result = await self._persist(finalized)
        self._notify(result)
        return result

    async def _persist(self, finalized: Sale) -> RegistrationResult:
        try:
            sale_id = await self._store.add_sale(finalized)
        except Exception as e:
            logger.error(
                "Failed to persist sale",
                extra={"product_id": finalized.product_id, "error": str(e)},
            )
            return _failure(
                RegistrationErrorKind.PERSISTENCE_FAILURE,
                f"Failed to record sale: {e}",
                cause=e,
            )

        registered = finalized.with_id(sale_id)

        try:
            await self._store.decrement_stock(finalized.product_id, finalized.quantity)
        except Exception as e:
            logger.error(
                "Sale recorded but stock decrement failed",
                extra={
                    "sale_id": sale_id,
                    "product_id": finalized.product_id,
                    "quantity": finalized.quantity,
                    "error": str(e),
                },
            )
            return RegistrationResult(
                sale_id=sale_id,
                error_kind=RegistrationErrorKind.PARTIAL_REGISTRATION,
                detail=f"Sale {sale_id} was recorded but stock was not decremented: {e}",
                cause=e,
                sale=registered,
            )

        logger.info(
            "Sale registered",
            extra={
                "sale_id": sale_id,
                "product_id": finalized.product_id,
                "quantity": finalized.quantity,
                "total_price": str(finalized.total_price),
            },
        )
        return RegistrationResult(sale_id=sale_id, sale=registered)

    def _notify(self, result: RegistrationResult) -> None:
        if self._notifier is None:
            return
        if result.error_kind is None:
            self._notifier.sale_registered(result.sale_id or "")
        else:
            self._notifier.registration_failed(result.error_kind.value, result.detail)


__all__ = [
    "DEFAULT_TAX_RATE_PERCENT",
    "RegistrationErrorKind",
    "RegistrationResult",
    "SaleRegistrationService",
]
