from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from orderflow.infrastructure.db import get_db
from orderflow.application.schemas import (
    BudgetCreate, BudgetUpdate, BudgetRead, StatusChange, BudgetConvert, OrderRead,
)
from orderflow.application.budget_service import BudgetService
from orderflow.application.order_service import OrderService, order_read
from orderflow.application.common import SessionUser
from orderflow.api.deps import get_session_user, require_roles

router = APIRouter(prefix="/api/budgets", tags=["budgets"])

@router.get("/", response_model=list[BudgetRead])
def list_budgets(status: Optional[str] = None, vendor_id: Optional[int] = None,
                 db: Session = Depends(get_db), user: SessionUser = Depends(get_session_user)):
    return BudgetService(db).list(user, status=status, vendor_id=vendor_id)

@router.get("/{budget_id}", response_model=BudgetRead)
def get_budget(budget_id: int, db: Session = Depends(get_db), user: SessionUser = Depends(get_session_user)):
    return BudgetService(db).get(budget_id, user)

@router.post("/", response_model=BudgetRead, status_code=201)
def create_budget(payload: BudgetCreate, db: Session = Depends(get_db),
                  user: SessionUser = Depends(require_roles("vendor"))):
    """Create a budget; totals are always computed server-side."""
    return BudgetService(db).create(payload, user)

@router.put("/{budget_id}", response_model=BudgetRead)
def update_budget(budget_id: int, payload: BudgetUpdate, db: Session = Depends(get_db),
                  user: SessionUser = Depends(require_roles("vendor"))):
    return BudgetService(db).update(budget_id, payload, user)

@router.put("/{budget_id}/status", response_model=BudgetRead)
def change_budget_status(budget_id: int, payload: StatusChange, db: Session = Depends(get_db),
                         user: SessionUser = Depends(require_roles("vendor"))):
    return BudgetService(db).change_status(budget_id, payload.status, user)

@router.post("/{budget_id}/convert", response_model=OrderRead, status_code=201)
def convert_budget(budget_id: int, payload: Optional[BudgetConvert] = None, db: Session = Depends(get_db),
                   user: SessionUser = Depends(require_roles("vendor"))):
    order = BudgetService(db).convert(budget_id, payload or BudgetConvert(), user)
    return order_read(OrderService(db).get(order.id))
