from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from orderflow.infrastructure.db import get_db
from orderflow.application.schemas import (
    OrderRead, StatusChange, PaymentCreate, PaymentRead, SendToProduction, SendToProductionResult,
    ConfirmDelivery, OrderItemRead, PurchaseStatusUpdate,
)
from orderflow.application.order_service import OrderService, order_read
from orderflow.application.common import SessionUser
from orderflow.api.deps import get_session_user, require_roles

router = APIRouter(prefix="/api/orders", tags=["orders"])
items_router = APIRouter(prefix="/api/order-items", tags=["orders"])

@router.get("/", response_model=list[OrderRead])
def list_orders(status: Optional[str] = None, vendor_id: Optional[int] = None, client_id: Optional[int] = None,
                db: Session = Depends(get_db), user: SessionUser = Depends(get_session_user)):
    """List orders with their derived display and payment status."""
    orders = OrderService(db).list(user, status=status, vendor_id=vendor_id, client_id=client_id)
    return [order_read(o) for o in orders]

@router.get("/{order_id}", response_model=OrderRead)
def get_order(order_id: int, db: Session = Depends(get_db), user: SessionUser = Depends(get_session_user)):
    return order_read(OrderService(db).get(order_id, user))

@router.put("/{order_id}/status", response_model=OrderRead)
def change_order_status(order_id: int, payload: StatusChange, db: Session = Depends(get_db),
                        user: SessionUser = Depends(require_roles("vendor", "logistics"))):
    return order_read(OrderService(db).change_status(order_id, payload.status, user))

@router.post("/{order_id}/payments", response_model=PaymentRead, status_code=201)
def add_payment(order_id: int, payload: PaymentCreate, db: Session = Depends(get_db),
                user: SessionUser = Depends(require_roles("finance", "vendor"))):
    return OrderService(db).add_payment(order_id, payload, user)

@router.get("/{order_id}/payments", response_model=list[PaymentRead])
def list_payments(order_id: int, db: Session = Depends(get_db), user: SessionUser = Depends(get_session_user)):
    return OrderService(db).list_payments(order_id, user)

@router.post("/{order_id}/send-to-production", response_model=SendToProductionResult)
def send_to_production(order_id: int, payload: Optional[SendToProduction] = None, db: Session = Depends(get_db),
                       user: SessionUser = Depends(require_roles("logistics", "vendor"))):
    """Send one producer's group (or every pending group) to production."""
    return OrderService(db).send_to_production(order_id, payload or SendToProduction(), user)

@router.post("/{order_id}/confirm-delivery", response_model=OrderRead)
def confirm_delivery(order_id: int, payload: Optional[ConfirmDelivery] = None, db: Session = Depends(get_db),
                     user: SessionUser = Depends(require_roles("logistics", "vendor"))):
    return order_read(OrderService(db).confirm_delivery(order_id, payload or ConfirmDelivery(), user))

@items_router.patch("/{item_id}/purchase-status", response_model=OrderItemRead)
def update_purchase_status(item_id: int, payload: PurchaseStatusUpdate, db: Session = Depends(get_db),
                           user: SessionUser = Depends(require_roles("logistics", "vendor"))):
    return OrderService(db).update_purchase_status(item_id, payload.purchase_status, user)
