from sqlalchemy.orm import Session, selectinload
from orderflow.domain.models import Order
from orderflow.domain.money import sum_money
from orderflow.domain import fulfillment
from .schemas import PendingShipmentRow, OrderItemRead, LogisticsDashboard
from .production_service import ProductionOrderService

class LogisticsService:
    """Read-only views for the logistics desk."""

    def __init__(self, db: Session):
        self.db = db

    def paid_orders(self) -> list[PendingShipmentRow]:
        """Paid orders that still have producer groups waiting to be sent.

        One row per (order, producer) group; orders whose items are all
        internal never show up.
        """
        orders = self.db.query(Order).options(
            selectinload(Order.items),
            selectinload(Order.production_orders),
        ).filter(
            Order.paid_value > 0,
            Order.status != "cancelled",
        ).order_by(Order.deadline.is_(None), Order.deadline, Order.id).all()

        rows = []
        for order in orders:
            groups = fulfillment.pending_producer_groups(order.items, order.production_orders)
            for producer_id, items in groups.items():
                rows.append(PendingShipmentRow(
                    order_id=order.id,
                    order_number=order.order_number,
                    order_status=order.status,
                    producer_id=producer_id,
                    items=[OrderItemRead.model_validate(i) for i in items],
                    item_count=len(items),
                    group_value=float(sum_money(i.total_price for i in items)),
                    deadline=order.deadline,
                    priority=fulfillment.deadline_priority(order.deadline),
                ))
        return rows

    def dashboard(self) -> LogisticsDashboard:
        production = ProductionOrderService(self.db)
        return LogisticsDashboard(
            by_status=production.counts_by_status(),
            overdue=production.overdue_count(),
            awaiting_dispatch=len(self.paid_orders()),
        )
