from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from orderflow.infrastructure.db import get_db
from orderflow.application.schemas import ProductionOrderRead, ProductionStatusUpdate, ProductionNotesUpdate
from orderflow.application.production_service import ProductionOrderService
from orderflow.application.order_service import production_order_read
from orderflow.application.common import SessionUser
from orderflow.api.deps import get_session_user, require_roles

router = APIRouter(prefix="/api/production-orders", tags=["production-orders"])

@router.get("/", response_model=list[ProductionOrderRead])
def list_production_orders(producer_id: Optional[int] = None, status: Optional[str] = None, overdue: bool = False,
                           db: Session = Depends(get_db), user: SessionUser = Depends(get_session_user)):
    pos = ProductionOrderService(db).list(user, producer_id=producer_id, status=status, overdue=overdue)
    return [production_order_read(po) for po in pos]

@router.get("/{production_order_id}", response_model=ProductionOrderRead)
def get_production_order(production_order_id: int, db: Session = Depends(get_db),
                         user: SessionUser = Depends(get_session_user)):
    return production_order_read(ProductionOrderService(db).get(production_order_id, user))

@router.patch("/{production_order_id}/status", response_model=ProductionOrderRead)
def update_production_status(production_order_id: int, payload: ProductionStatusUpdate,
                             db: Session = Depends(get_db),
                             user: SessionUser = Depends(require_roles("producer", "logistics"))):
    """Advance a production order; the parent order follows."""
    return production_order_read(ProductionOrderService(db).update_status(production_order_id, payload, user))

@router.patch("/{production_order_id}/notes", response_model=ProductionOrderRead)
def update_notes(production_order_id: int, payload: ProductionNotesUpdate, db: Session = Depends(get_db),
                 user: SessionUser = Depends(require_roles("producer", "logistics", "vendor"))):
    return production_order_read(ProductionOrderService(db).update_notes(production_order_id, payload.notes, user))

@router.post("/{production_order_id}/notes/read", response_model=ProductionOrderRead)
def mark_notes_read(production_order_id: int, db: Session = Depends(get_db),
                    user: SessionUser = Depends(require_roles("producer", "logistics", "vendor"))):
    return production_order_read(ProductionOrderService(db).mark_notes_read(production_order_id, user))
