"""Producer split and the views derived from an order's production orders.

Everything here is a pure function over plain objects: order items expose
`producer_id` and `is_internal`, production orders expose `producer_id` and
`status`. Callers pass ORM rows; tests pass simple namespaces.
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .states import order_rank

SHIPPED_STATES = frozenset({"shipped", "delivered", "completed"})
DELIVERED_STATES = frozenset({"delivered", "completed"})
READY_STATES = frozenset({"ready"}) | SHIPPED_STATES


def is_external(item: Any) -> bool:
    return item.producer_id is not None and not item.is_internal


def group_items_by_producer(items: Iterable[Any]) -> Dict[int, List[Any]]:
    """Partition external items by producer, in order of first appearance."""
    groups: Dict[int, List[Any]] = {}
    for item in items:
        if is_external(item):
            groups.setdefault(item.producer_id, []).append(item)
    return groups


def active_production_orders(production_orders: Iterable[Any]) -> List[Any]:
    """Rejected production orders no longer count towards fulfillment."""
    return [po for po in production_orders if po.status != "rejected"]


def is_sent(production_order: Any) -> bool:
    return production_order.status not in ("pending", "rejected")


def find_active(production_orders: Iterable[Any], producer_id: int) -> Optional[Any]:
    for po in active_production_orders(production_orders):
        if po.producer_id == producer_id:
            return po
    return None


def pending_producer_groups(items: Iterable[Any], production_orders: Iterable[Any]) -> Dict[int, List[Any]]:
    """Producer groups with no active production order at all.

    These are the groups logistics still has to dispatch. A group whose
    production order is merely `pending` is already dispatched.
    """
    dispatched = {po.producer_id for po in active_production_orders(production_orders)}
    return {
        producer_id: group
        for producer_id, group in group_items_by_producer(items).items()
        if producer_id not in dispatched
    }


def sendable_producer_groups(items: Iterable[Any], production_orders: Iterable[Any]) -> Dict[int, List[Any]]:
    """Groups a send-to-production call may target.

    Includes groups whose production order is still `pending`, so a repeated
    send finds and reuses it.
    """
    sent = {po.producer_id for po in production_orders if is_sent(po)}
    return {
        producer_id: group
        for producer_id, group in group_items_by_producer(items).items()
        if producer_id not in sent
    }


def display_status(order_status: str, production_orders: Iterable[Any], items: Iterable[Any] = ()) -> str:
    """Status to show for an order, accounting for partial shipments.

    `delivered` is shown only when every producer group has an active
    production order and all of those are delivered or completed;
    `partial_shipped` while some, but not all, groups have left the producer.
    """
    if order_status in ("cancelled", "completed"):
        return order_status
    active = active_production_orders(production_orders)
    if not active:
        return order_status
    unsent = pending_producer_groups(items, active)
    if not unsent and all(po.status in DELIVERED_STATES for po in active):
        return "delivered"
    shipped = sum(1 for po in active if po.status in SHIPPED_STATES)
    if 0 < shipped < len(active) + len(unsent) and order_status in ("production", "ready"):
        return "partial_shipped"
    return order_status


def aggregate_order_status(order_status: str, production_orders: Iterable[Any], items: Iterable[Any] = ()) -> str:
    """Stored order status implied by its production orders.

    Only ever moves the order forward along production → ready → shipped →
    delivered, and never touches cancelled or completed orders. While any
    producer group is still undispatched the order stays in `production`.
    """
    if order_status in ("cancelled", "completed"):
        return order_status
    active = active_production_orders(production_orders)
    if not active:
        return order_status

    if pending_producer_groups(items, active):
        implied = "production"
    elif all(po.status in DELIVERED_STATES for po in active):
        implied = "delivered"
    elif all(po.status in SHIPPED_STATES for po in active):
        implied = "shipped"
    elif all(po.status in READY_STATES for po in active):
        implied = "ready"
    else:
        implied = "production"

    if order_rank(implied) > order_rank(order_status):
        return implied
    return order_status


def days_until(deadline: datetime, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return math.ceil((deadline - now).total_seconds() / 86400)


def deadline_priority(deadline: Optional[datetime], now: Optional[datetime] = None) -> Optional[str]:
    """Display badge for a deadline: overdue, urgent, warning or normal."""
    if deadline is None:
        return None
    days = days_until(deadline, now)
    if days < 0:
        return "overdue"
    if days <= 1:
        return "urgent"
    if days <= 3:
        return "warning"
    return "normal"
