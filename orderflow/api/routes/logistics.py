from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from orderflow.infrastructure.db import get_db
from orderflow.application.schemas import PendingShipmentRow, LogisticsDashboard
from orderflow.application.logistics_service import LogisticsService
from orderflow.application.common import SessionUser
from orderflow.api.deps import require_roles

router = APIRouter(prefix="/api/logistics", tags=["logistics"])

@router.get("/paid-orders", response_model=list[PendingShipmentRow])
def paid_orders(db: Session = Depends(get_db), user: SessionUser = Depends(require_roles("logistics"))):
    """One row per paid order and producer still waiting to be sent."""
    return LogisticsService(db).paid_orders()

@router.get("/dashboard", response_model=LogisticsDashboard)
def dashboard(db: Session = Depends(get_db), user: SessionUser = Depends(require_roles("logistics"))):
    return LogisticsService(db).dashboard()
