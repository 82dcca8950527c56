"""
Domain: Sale records.

Rules implemented here:
- A Sale is valid iff product_id is non-empty, quantity > 0, unit_price > 0
  and operator_id is non-empty.
- total_price supplied by a caller is advisory; registration overwrites it with
  quantity * unit_price and fixes the tax rate at that moment.
- A Sale is created once and never mutated afterwards.

Validation is a pure predicate: constructing an invalid Sale is allowed so the
registration flow can reject it with a classified error instead of a crash.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class Sale:
    """
    Immutable record of one point-of-sale transaction line.

    Captures:
    - What was sold (product_id, quantity, unit_price)
    - Who registered it (operator_id)
    - When it happened (sold_at)
    - The totals fixed at registration (total_price, tax_rate)

    sale_id is empty until the inventory store assigns one.
    """

    product_id: str
    quantity: int
    unit_price: Decimal
    sold_at: datetime
    operator_id: str
    sale_id: str = ""
    product_name: str = ""  # display only, never used for lookups
    total_price: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")  # percent
    discount: Decimal = Decimal("0")  # carried through, not applied to totals

    def __post_init__(self) -> None:
        require_utc_timestamp("sold_at", self.sold_at)

    def is_valid(self) -> bool:
        return validate_sale(self)

    def subtotal(self) -> Decimal:
        """quantity * unit_price, independent of whatever total_price holds."""
        return Decimal(self.quantity) * self.unit_price

    def total_with_tax(self) -> Decimal:
        """Total price plus tax_rate percent of it."""
        return self.total_price + (self.total_price * self.tax_rate / Decimal(100))

    def finalized(self, tax_rate: Decimal) -> "Sale":
        """
        Return the registered form of this sale.

        total_price becomes quantity * unit_price and tax_rate is fixed to the
        given percentage; every other field is carried unchanged.
        """

        return replace(self, total_price=self.subtotal(), tax_rate=tax_rate)

    def with_id(self, sale_id: str) -> "Sale":
        return replace(self, sale_id=sale_id)


def validate_sale(sale: Sale) -> bool:
    """
    Check that a candidate sale is well-formed.

    Pure, no I/O. Fails closed: any missing or non-positive field makes the
    sale invalid.
    """

    if not isinstance(sale.product_id, str) or not sale.product_id.strip():
        return False
    if not isinstance(sale.operator_id, str) or not sale.operator_id.strip():
        return False
    if isinstance(sale.quantity, bool) or not isinstance(sale.quantity, int):
        return False
    if sale.quantity <= 0:
        return False
    try:
        return bool(sale.unit_price > 0)
    except (TypeError, ArithmeticError):
        return False


__all__ = ["Sale", "validate_sale"]
