from typing import Dict, Optional
from fastapi import HTTPException
from sqlalchemy.orm import Session, selectinload
from orderflow.domain.models import Order, ProductionOrder
from orderflow.domain.states import PRODUCTION_ORDER
from orderflow.domain import fulfillment
from orderflow.core.logging_config import get_logger
from .schemas import ProductionStatusUpdate
from .common import SessionUser, as_naive_utc, utcnow
from .audit import AuditService
from .order_service import OrderService

logger = get_logger(__name__)

# Statuses that close out the producer's part of the work
_FINISHED = ("shipped", "delivered", "completed")

# Order column that ties each non-producer role to the orders it may see
_ORDER_OWNER = {"vendor": "vendor_id", "client": "client_id", "partner": "partner_id"}

class ProductionOrderService:
    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    def list(self, actor: SessionUser, producer_id: Optional[int] = None,
             status: Optional[str] = None, overdue: bool = False):
        query = self.db.query(ProductionOrder).options(selectinload(ProductionOrder.items))
        if actor.role == "producer":
            producer_id = actor.id
        elif actor.role in _ORDER_OWNER:
            owner = getattr(Order, _ORDER_OWNER[actor.role])
            query = query.filter(ProductionOrder.order.has(owner == actor.id))
        if producer_id is not None:
            query = query.filter(ProductionOrder.producer_id == producer_id)
        if status:
            query = query.filter(ProductionOrder.status == status)
        if overdue:
            query = query.filter(
                ProductionOrder.deadline.is_not(None),
                ProductionOrder.deadline < utcnow(),
                ProductionOrder.status.not_in(("delivered", "completed", "rejected")),
            )
        return query.order_by(ProductionOrder.deadline.is_(None), ProductionOrder.deadline, ProductionOrder.id).all()

    def get(self, production_order_id: int, actor: Optional[SessionUser] = None) -> ProductionOrder:
        po = self.db.query(ProductionOrder).options(selectinload(ProductionOrder.items)).filter(
            ProductionOrder.id == production_order_id
        ).first()
        if not po:
            raise HTTPException(status_code=404, detail="Production order not found")
        if actor is not None:
            if actor.role == "producer" and po.producer_id != actor.id:
                raise HTTPException(status_code=403, detail="Production order belongs to another producer")
            if actor.role in _ORDER_OWNER:
                OrderService(self.db).check_visible(po.order, actor)
        return po

    def _set_notes(self, po: ProductionOrder, notes: str) -> None:
        po.notes = notes
        po.has_unread_notes = True
        po.last_note_at = utcnow()

    def update_status(self, production_order_id: int, data: ProductionStatusUpdate, actor: SessionUser) -> ProductionOrder:
        """Advance a production order and re-aggregate its parent order."""
        po = self.get(production_order_id, actor)
        # Lock the parent so aggregation sees a consistent set of production orders
        order = OrderService(self.db).get(po.order_id, lock=True)
        previous = po.status
        po.status = PRODUCTION_ORDER.assert_transition(po.status, data.status)

        now = utcnow()
        if po.status == "accepted":
            po.accepted_at = now
        elif po.status in _FINISHED and po.completed_at is None:
            po.completed_at = now
        if data.notes:
            self._set_notes(po, data.notes)
        if data.deadline is not None:
            po.deadline = as_naive_utc(data.deadline)
        if data.tracking_code is not None:
            po.tracking_code = data.tracking_code

        self.audit.record(actor, "STATUS", "production_order", po.id,
                          f"Production order {po.id} of order {order.order_number} moved from {previous} to {po.status}")
        order_status = OrderService(self.db).sync_status(order, actor)
        self.db.commit()
        logger.info(f"Production order {po.id} is now {po.status}; order {order.order_number} is {order_status}")
        return self.get(po.id)

    def update_notes(self, production_order_id: int, notes: str, actor: SessionUser) -> ProductionOrder:
        po = self.get(production_order_id, actor)
        self._set_notes(po, notes)
        self.audit.record(actor, "NOTES", "production_order", po.id, f"Notes updated on production order {po.id}")
        self.db.commit()
        return self.get(po.id)

    def mark_notes_read(self, production_order_id: int, actor: SessionUser) -> ProductionOrder:
        po = self.get(production_order_id, actor)
        po.has_unread_notes = False
        self.db.commit()
        return self.get(po.id)

    def counts_by_status(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for (status,) in self.db.query(ProductionOrder.status).all():
            counts[status] = counts.get(status, 0) + 1
        return counts

    def overdue_count(self) -> int:
        return sum(
            1 for po in self.db.query(ProductionOrder).filter(
                ProductionOrder.status.not_in(("delivered", "completed", "rejected"))
            ).all()
            if fulfillment.deadline_priority(po.deadline) == "overdue"
        )
