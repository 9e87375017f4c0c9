"""Budget and order total computation."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Optional

from .money import Number, ZERO, quantize_money, to_decimal

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_VALUE = "value"

DELIVERY = "delivery"
PICKUP = "pickup"

@dataclass(frozen=True)
class Discount:
    has_discount: bool = False
    discount_type: str = DISCOUNT_PERCENTAGE
    percentage: Number = 0
    value: Number = 0

    def amount_for(self, subtotal: Decimal) -> Decimal:
        if not self.has_discount:
            return ZERO
        if self.discount_type == DISCOUNT_PERCENTAGE:
            raw = subtotal * to_decimal(self.percentage) / Decimal(100)
        elif self.discount_type == DISCOUNT_VALUE:
            raw = to_decimal(self.value)
        else:
            raise ValueError(f"unknown discount type: {self.discount_type}")
        # never discount more than the subtotal, nor a negative amount
        return quantize_money(min(max(raw, ZERO), subtotal))

@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount_amount: Decimal
    shipping: Decimal
    total: Decimal

def line_total(item: Any, customization_value: Number = 0) -> Decimal:
    """Price of one line: quantity × unit price plus customization charges.

    `item` is anything exposing `quantity`, `unit_price`,
    `has_item_customization` and `item_customization_value`: ORM rows and
    request schemas both qualify. `customization_value` is the budget-wide
    per-unit customization charge.
    """
    quantity = to_decimal(item.quantity)
    base = to_decimal(item.unit_price) * quantity
    if getattr(item, "has_item_customization", False):
        base += to_decimal(getattr(item, "item_customization_value", 0))
    base += quantity * to_decimal(customization_value)
    return quantize_money(base)

def effective_shipping(shipping_cost: Number, delivery_type: str = DELIVERY) -> Decimal:
    """Shipping charged on the total; pickup never pays shipping."""
    return ZERO if delivery_type == PICKUP else quantize_money(shipping_cost)

def compute_totals(
    items: Iterable[Any],
    discount: Optional[Discount] = None,
    shipping_cost: Number = 0,
    delivery_type: str = DELIVERY,
    customization_value: Number = 0,
) -> Totals:
    subtotal = quantize_money(sum((line_total(i, customization_value) for i in items), Decimal(0)))
    discount_amount = (discount or Discount()).amount_for(subtotal)
    shipping = effective_shipping(shipping_cost, delivery_type)
    total = quantize_money(max(subtotal - discount_amount, ZERO) + shipping)
    return Totals(subtotal=subtotal, discount_amount=discount_amount, shipping=shipping, total=total)
