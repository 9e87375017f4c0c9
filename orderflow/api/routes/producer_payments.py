from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from orderflow.infrastructure.db import get_db
from orderflow.application.schemas import (
    ProducerPaymentCreate, ProducerPaymentStatusUpdate, ProducerPaymentRead, ProducerPaymentSummary,
)
from orderflow.application.producer_payment_service import ProducerPaymentService
from orderflow.application.common import SessionUser
from orderflow.api.deps import require_roles

router = APIRouter(prefix="/api/producer-payments", tags=["producer-payments"])
finance_router = APIRouter(prefix="/api/finance/producer-payments", tags=["producer-payments"])

@router.get("/", response_model=list[ProducerPaymentRead])
def list_producer_payments(status: Optional[str] = None, producer_id: Optional[int] = None,
                           db: Session = Depends(get_db),
                           user: SessionUser = Depends(require_roles("finance", "producer"))):
    return ProducerPaymentService(db).list(user, status=status, producer_id=producer_id)

@router.get("/summary", response_model=ProducerPaymentSummary)
def producer_payment_summary(producer_id: Optional[int] = None, db: Session = Depends(get_db),
                             user: SessionUser = Depends(require_roles("finance", "producer"))):
    """Outstanding and paid totals, for one producer or all of them."""
    return ProducerPaymentService(db).summary(user, producer_id=producer_id)

@router.get("/{payment_id}", response_model=ProducerPaymentRead)
def get_producer_payment(payment_id: int, db: Session = Depends(get_db),
                         user: SessionUser = Depends(require_roles("finance", "producer"))):
    return ProducerPaymentService(db).get(payment_id, user)

@router.post("/", response_model=ProducerPaymentRead, status_code=201)
def create_producer_payment(payload: ProducerPaymentCreate, db: Session = Depends(get_db),
                            user: SessionUser = Depends(require_roles("finance", "producer"))):
    return ProducerPaymentService(db).create(payload, user)

@router.patch("/{payment_id}", response_model=ProducerPaymentRead)
def update_producer_payment(payment_id: int, payload: ProducerPaymentStatusUpdate, db: Session = Depends(get_db),
                            user: SessionUser = Depends(require_roles("finance"))):
    return ProducerPaymentService(db).change_status(payment_id, payload, user)

@finance_router.get("/producer/{producer_id}", response_model=list[ProducerPaymentRead])
def producer_receivables(producer_id: int, db: Session = Depends(get_db),
                         user: SessionUser = Depends(require_roles("finance", "producer"))):
    """A producer's receivables: everything the business owes or has paid them."""
    return ProducerPaymentService(db).list_for_producer(producer_id, user)
