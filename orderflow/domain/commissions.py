"""Commission arithmetic and eligibility rules."""

from decimal import Decimal
from typing import Any, Iterable, List, Tuple

from .money import Number, ZERO, percentage_of, quantize_money, to_decimal
from .states import COMMISSION

VENDOR = "vendor"
PARTNER = "partner"

def commission_amount(order_value: Number, percentage: Number) -> Decimal:
    return percentage_of(order_value, percentage)

def can_mark_paid(commission: Any) -> bool:
    return COMMISSION.can_transition(commission.status, "paid")

def can_delete(commission: Any) -> bool:
    return commission.status != "paid"

def plan_deduction(pending: Iterable[Any], amount: Number) -> Tuple[List[Tuple[Any, Decimal]], Decimal]:
    """Spread a deduction over pending commissions, oldest first.

    Returns `(steps, remainder)`. Each step is `(commission, new_amount)`; a
    new amount of zero means the whole commission is consumed and becomes
    `deducted`. `remainder` is what could not be covered.
    """
    remaining = quantize_money(amount)
    steps: List[Tuple[Any, Decimal]] = []
    for commission in pending:
        if remaining <= ZERO:
            break
        current = to_decimal(commission.amount)
        if current <= remaining:
            steps.append((commission, ZERO))
            remaining -= current
        else:
            steps.append((commission, quantize_money(current - remaining)))
            remaining = ZERO
    return steps, quantize_money(remaining)
