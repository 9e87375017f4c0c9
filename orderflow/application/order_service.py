from typing import Optional
from fastapi import HTTPException
from sqlalchemy.orm import Session, selectinload
from orderflow.domain.models import Order, OrderItem, Payment, ProductionOrder
from orderflow.domain.money import ZERO, quantize_money, sum_money, to_decimal
from orderflow.domain.states import ORDER, PRODUCTION_ORDER, PURCHASE_STATUSES
from orderflow.domain.commissions import VENDOR, PARTNER
from orderflow.domain import fulfillment
from orderflow.core.logging_config import get_logger
from .schemas import (
    OrderRead, PaymentCreate, ProductionOrderRead, SendToProduction,
    SendToProductionResult, ProducerDispatchResult, ConfirmDelivery,
)
from .common import SessionUser, as_naive_utc, get_or_404, utcnow
from .audit import AuditService
from .commission_service import CommissionService

logger = get_logger(__name__)

# Orders that can still receive production orders
SENDABLE_STATUSES = ("confirmed", "production", "ready")

def payment_status(order: Order) -> str:
    paid = to_decimal(order.paid_value)
    if paid >= to_decimal(order.total_value) and paid > ZERO:
        return "paid"
    if paid > ZERO:
        return "partial"
    return "pending"

def production_order_read(po: ProductionOrder) -> ProductionOrderRead:
    data = ProductionOrderRead.model_validate(po)
    if po.status not in ("delivered", "completed", "rejected"):
        data.priority = fulfillment.deadline_priority(po.deadline)
    return data

def order_read(order: Order) -> OrderRead:
    """Order plus the values derived from its production orders and payments."""
    data = OrderRead.model_validate(order)
    data.production_orders = [production_order_read(po) for po in order.production_orders]
    data.display_status = fulfillment.display_status(order.status, order.production_orders, order.items)
    data.payment_status = payment_status(order)
    data.remaining_value = float(quantize_money(to_decimal(order.total_value) - to_decimal(order.paid_value)))
    if order.status not in ("delivered", "completed", "cancelled"):
        data.priority = fulfillment.deadline_priority(order.deadline)
    return data

class OrderService:
    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)
        self.commissions = CommissionService(db)

    def _query(self):
        return self.db.query(Order).options(
            selectinload(Order.items),
            selectinload(Order.production_orders).selectinload(ProductionOrder.items),
        )

    def list(self, actor: SessionUser, status: Optional[str] = None,
             vendor_id: Optional[int] = None, client_id: Optional[int] = None):
        query = self._query()
        if actor.role == "vendor":
            vendor_id = actor.id
        elif actor.role == "client":
            client_id = actor.id
        elif actor.role == "partner":
            query = query.filter(Order.partner_id == actor.id)
        elif actor.role == "producer":
            query = query.filter(Order.production_orders.any(ProductionOrder.producer_id == actor.id))
        if status:
            query = query.filter(Order.status == status)
        if vendor_id is not None:
            query = query.filter(Order.vendor_id == vendor_id)
        if client_id is not None:
            query = query.filter(Order.client_id == client_id)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def get(self, order_id: int, actor: Optional[SessionUser] = None, lock: bool = False) -> Order:
        query = self._query().filter(Order.id == order_id)
        if lock:
            # Serializes concurrent sends/deliveries for the same order
            query = query.with_for_update()
        order = query.first()
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        if actor is not None:
            self.check_visible(order, actor)
        return order

    def check_visible(self, order: Order, actor: SessionUser) -> None:
        owner = {
            "vendor": order.vendor_id,
            "client": order.client_id,
            "partner": order.partner_id,
        }
        if actor.role in owner and owner[actor.role] != actor.id:
            raise HTTPException(status_code=403, detail="Order belongs to another account")
        if actor.role == "producer" and all(po.producer_id != actor.id for po in order.production_orders):
            raise HTTPException(status_code=403, detail="Order has no production order for this producer")

    # --- status ---

    def sync_status(self, order: Order, actor: Optional[SessionUser] = None) -> str:
        """Move the order forward to whatever its production orders imply."""
        previous = order.status
        implied = fulfillment.aggregate_order_status(order.status, order.production_orders, order.items)
        if implied != previous:
            order.status = implied
            self._on_status_change(order, previous, actor)
        return order.status

    def _on_status_change(self, order: Order, previous: str, actor: Optional[SessionUser]) -> None:
        if order.status == "delivered":
            confirmed = self.commissions.confirm_for_order(order.id, VENDOR)
            logger.info(f"Order {order.order_number} delivered; {confirmed} vendor commission(s) confirmed")
        elif order.status == "cancelled":
            self.commissions.cancel_for_order(order.id)
        self.audit.record(actor, "STATUS", "order", order.id,
                          f"Order {order.order_number} moved from {previous} to {order.status}")

    def _check_fully_delivered(self, order: Order) -> None:
        active = fulfillment.active_production_orders(order.production_orders)
        if fulfillment.pending_producer_groups(order.items, active):
            raise HTTPException(status_code=409, detail="Order has producer groups that were never sent to production")
        if any(po.status not in fulfillment.DELIVERED_STATES for po in active):
            raise HTTPException(status_code=409, detail="Order has production orders that are not delivered yet")

    def change_status(self, order_id: int, target: str, actor: SessionUser) -> Order:
        order = self.get(order_id, actor, lock=True)
        ORDER.assert_transition(order.status, target)
        if target == "delivered":
            self._check_fully_delivered(order)
        previous = order.status
        order.status = target
        self._on_status_change(order, previous, actor)
        self.db.commit()
        return self.get(order_id)

    # --- payments ---

    def add_payment(self, order_id: int, data: PaymentCreate, actor: SessionUser) -> Payment:
        order = self.get(order_id, actor, lock=True)
        if order.status == "cancelled":
            raise HTTPException(status_code=409, detail="Cannot post payments to a cancelled order")
        confirmed_before = [p.amount for p in order.payments if p.status == "confirmed"]
        amount = quantize_money(data.amount)
        if data.status == "confirmed":
            new_paid = sum_money(confirmed_before + [amount])
            if new_paid > to_decimal(order.total_value):
                raise HTTPException(status_code=422, detail="Payment exceeds the order's outstanding value")

        payment = Payment(
            order_id=order.id,
            amount=amount,
            method=data.method,
            status=data.status,
            transaction_id=data.transaction_id,
            paid_at=utcnow() if data.status == "confirmed" else None,
        )
        order.payments.append(payment)
        order.paid_value = sum_money(p.amount for p in order.payments if p.status == "confirmed")

        # Partner commissions are due once the order has started being paid
        if data.status == "confirmed" and not confirmed_before:
            self.commissions.confirm_for_order(order.id, PARTNER)

        self.db.flush()
        self.audit.record(actor, "PAYMENT", "order", order.id,
                          f"Payment of {amount} ({data.method}, {data.status}) posted to order {order.order_number}",
                          "success")
        self.db.commit()
        self.db.refresh(payment)
        return payment

    def list_payments(self, order_id: int, actor: SessionUser):
        return self.get(order_id, actor).payments

    # --- production dispatch ---

    def send_to_production(self, order_id: int, data: SendToProduction, actor: SessionUser) -> SendToProductionResult:
        """Create one production order per targeted producer group.

        With `producer_id` only that producer's group is sent; without it every
        group not yet sent is. An existing `pending` production order for a
        producer is reused instead of duplicated, and a producer whose
        production order has already moved past `pending` cannot be sent again.
        """
        order = self.get(order_id, actor, lock=True)
        if order.status not in SENDABLE_STATUSES:
            raise HTTPException(status_code=409, detail=f"Order in status '{order.status}' cannot be sent to production")

        groups = fulfillment.group_items_by_producer(order.items)
        pending = fulfillment.sendable_producer_groups(order.items, order.production_orders)
        if data.producer_id is not None:
            if data.producer_id not in groups:
                raise HTTPException(status_code=422, detail="Producer has no items on this order")
            if data.producer_id not in pending:
                raise HTTPException(status_code=409, detail="Order was already sent to this producer")
            targets = {data.producer_id: pending[data.producer_id]}
        else:
            targets = pending
            if not targets:
                raise HTTPException(status_code=409, detail="No producer groups left to send")

        deadline = as_naive_utc(data.deadline) or order.deadline
        results = []
        for producer_id, items in targets.items():
            production_order = fulfillment.find_active(order.production_orders, producer_id)
            outcome = "existing"
            if production_order is None:
                production_order = ProductionOrder(order_id=order.id, producer_id=producer_id,
                                                   status="pending", deadline=deadline)
                order.production_orders.append(production_order)
                outcome = "created"
            elif data.deadline is not None:
                production_order.deadline = deadline
            self.db.flush()
            for item in items:
                item.production_order_id = production_order.id
            results.append(ProducerDispatchResult(
                producer_id=producer_id,
                production_order_id=production_order.id,
                result=outcome,
                item_ids=[i.id for i in items],
            ))
            self.audit.record(actor, "SEND_TO_PRODUCTION", "order", order.id,
                              f"Order {order.order_number} sent to producer {producer_id} ({outcome})")

        if order.status == "confirmed":
            previous = order.status
            order.status = ORDER.assert_transition(order.status, "production")
            self._on_status_change(order, previous, actor)
        self.db.commit()
        logger.info(f"Order {order.order_number} dispatched to {len(results)} producer(s)")
        return SendToProductionResult(order_id=order.id, order_status=order.status, results=results)

    def confirm_delivery(self, order_id: int, data: ConfirmDelivery, actor: SessionUser) -> Order:
        order = self.get(order_id, actor, lock=True)
        active = fulfillment.active_production_orders(order.production_orders)
        if data.production_order_id is not None:
            targets = [po for po in active if po.id == data.production_order_id]
            if not targets:
                raise HTTPException(status_code=404, detail="Production order not found on this order")
        elif active:
            targets = [po for po in active if po.status == "shipped"]
            if not targets:
                raise HTTPException(status_code=409, detail="No shipped production orders to confirm")
        else:
            targets = []

        for po in targets:
            po.status = PRODUCTION_ORDER.assert_transition(po.status, "delivered")
            po.completed_at = po.completed_at or utcnow()
            self.audit.record(actor, "DELIVERY", "production_order", po.id,
                              f"Delivery of production order {po.id} confirmed")

        if targets:
            self.sync_status(order, actor)
        else:
            # Orders fulfilled without external producers are delivered directly
            self._check_fully_delivered(order)
            previous = order.status
            order.status = ORDER.assert_transition(order.status, "delivered")
            self._on_status_change(order, previous, actor)
        self.db.commit()
        return self.get(order_id)

    # --- items ---

    def update_purchase_status(self, item_id: int, purchase_status: str, actor: SessionUser) -> OrderItem:
        item = get_or_404(self.db, OrderItem, item_id, "Order item")
        self.get(item.order_id, actor)
        if PURCHASE_STATUSES.index(purchase_status) < PURCHASE_STATUSES.index(item.purchase_status):
            raise HTTPException(status_code=409, detail="Purchase status cannot move backwards")
        previous = item.purchase_status
        item.purchase_status = purchase_status
        self.audit.record(actor, "PURCHASE_STATUS", "order_item", item.id,
                          f"Item {item.id} purchase status {previous} -> {purchase_status}")
        self.db.commit()
        self.db.refresh(item)
        return item
