from typing import Dict, Optional
from fastapi import HTTPException
from sqlalchemy.orm import Session
from orderflow.domain.models import ProducerPayment, ProductionOrder
from orderflow.domain.money import quantize_money, sum_money
from orderflow.domain.states import PRODUCER_PAYMENT
from orderflow.core.logging_config import get_logger
from .schemas import ProducerPaymentCreate, ProducerPaymentStatusUpdate, ProducerPaymentSummary
from .common import SessionUser, get_or_404, utcnow
from .audit import AuditService

logger = get_logger(__name__)

# Payables the producer is still waiting on
OUTSTANDING = ("pending", "approved")

class ProducerPaymentService:
    """Payables owed to producers, at most one open payable per production order."""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    def list(self, actor: SessionUser, status: Optional[str] = None, producer_id: Optional[int] = None):
        query = self.db.query(ProducerPayment)
        if actor.role == "producer":
            producer_id = actor.id
        if producer_id is not None:
            query = query.filter(ProducerPayment.producer_id == producer_id)
        if status:
            query = query.filter(ProducerPayment.status == status)
        return query.order_by(ProducerPayment.created_at.desc(), ProducerPayment.id.desc()).all()

    def list_for_producer(self, producer_id: int, actor: SessionUser):
        if actor.role == "producer" and actor.id != producer_id:
            raise HTTPException(status_code=403, detail="Payables belong to another producer")
        return self.list(actor, producer_id=producer_id)

    def get(self, payment_id: int, actor: Optional[SessionUser] = None) -> ProducerPayment:
        payment = get_or_404(self.db, ProducerPayment, payment_id, "Producer payment")
        if actor is not None and actor.role == "producer" and payment.producer_id != actor.id:
            raise HTTPException(status_code=403, detail="Payable belongs to another producer")
        return payment

    def create(self, data: ProducerPaymentCreate, actor: SessionUser) -> ProducerPayment:
        po = get_or_404(self.db, ProductionOrder, data.production_order_id, "Production order")
        if actor.role == "producer" and po.producer_id != actor.id:
            raise HTTPException(status_code=403, detail="Production order belongs to another producer")
        if po.status == "rejected":
            raise HTTPException(status_code=409, detail="A rejected production order has nothing to pay")
        open_payable = self.db.query(ProducerPayment).filter(
            ProducerPayment.production_order_id == po.id,
            ProducerPayment.status != "rejected",
        ).first()
        if open_payable:
            raise HTTPException(status_code=409, detail=f"Production order {po.id} already has payable {open_payable.id}")

        payment = ProducerPayment(
            production_order_id=po.id,
            producer_id=po.producer_id,
            order_id=po.order_id,
            amount=quantize_money(data.amount),
            status=PRODUCER_PAYMENT.initial,
            notes=data.notes,
        )
        self.db.add(payment)
        self.db.flush()
        self.audit.record(actor, "CREATE", "producer_payment", payment.id,
                          f"Payable of {payment.amount} for production order {po.id} registered", "success")
        self.db.commit()
        self.db.refresh(payment)
        return payment

    def change_status(self, payment_id: int, data: ProducerPaymentStatusUpdate, actor: SessionUser) -> ProducerPayment:
        """Approve, reject or settle a payable; settling needs a payment method."""
        payment = self.get(payment_id)
        if data.status == "paid" and not data.payment_method:
            raise HTTPException(status_code=422, detail="payment_method is required to mark a payable paid")
        previous = payment.status
        payment.status = PRODUCER_PAYMENT.assert_transition(payment.status, data.status)

        now = utcnow()
        if payment.status == "approved":
            payment.approved_by = actor.id
            payment.approved_at = now
        elif payment.status == "paid":
            payment.paid_by = actor.id
            payment.paid_at = now
            payment.payment_method = data.payment_method
        if data.notes is not None:
            payment.notes = data.notes

        level = "warning" if payment.status == "rejected" else "success"
        self.audit.record(actor, "STATUS", "producer_payment", payment.id,
                          f"Payable {payment.id} moved from {previous} to {payment.status}", level)
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"Producer {payment.producer_id} payable {payment.id} is now {payment.status}")
        return payment

    def summary(self, actor: SessionUser, producer_id: Optional[int] = None) -> ProducerPaymentSummary:
        payments = self.list(actor, producer_id=producer_id)
        counts: Dict[str, int] = {}
        for payment in payments:
            counts[payment.status] = counts.get(payment.status, 0) + 1
        return ProducerPaymentSummary(
            producer_id=actor.id if actor.role == "producer" else producer_id,
            outstanding=float(sum_money(p.amount for p in payments if p.status in OUTSTANDING)),
            paid=float(sum_money(p.amount for p in payments if p.status == "paid")),
            counts=counts,
        )
