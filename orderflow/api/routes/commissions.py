from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from orderflow.infrastructure.db import get_db
from orderflow.application.schemas import (
    CommissionRead, StatusChange, BulkIds, BulkResult, DeductionRequest, DeductionResult,
)
from orderflow.application.commission_service import CommissionService
from orderflow.application.common import SessionUser
from orderflow.api.deps import get_session_user, require_roles

router = APIRouter(prefix="/api/commissions", tags=["commissions"])

@router.get("/", response_model=list[CommissionRead])
def list_commissions(status: Optional[str] = None, vendor_id: Optional[int] = None,
                     partner_id: Optional[int] = None, kind: Optional[str] = Query(None, alias="type"),
                     db: Session = Depends(get_db), user: SessionUser = Depends(get_session_user)):
    return CommissionService(db).list(user, status=status, vendor_id=vendor_id, partner_id=partner_id, kind=kind)

@router.put("/{commission_id}/status", response_model=CommissionRead)
def change_commission_status(commission_id: int, payload: StatusChange, db: Session = Depends(get_db),
                             user: SessionUser = Depends(require_roles("finance"))):
    return CommissionService(db).change_status(commission_id, payload.status, user)

@router.delete("/{commission_id}", status_code=204)
def delete_commission(commission_id: int, db: Session = Depends(get_db),
                      user: SessionUser = Depends(require_roles("finance"))):
    CommissionService(db).delete(commission_id, user)
    return None

@router.post("/bulk/mark-paid", response_model=BulkResult)
def bulk_mark_paid(payload: BulkIds, db: Session = Depends(get_db),
                   user: SessionUser = Depends(require_roles("finance"))):
    """Mark every eligible commission paid; the rest are reported, not failed."""
    return CommissionService(db).bulk_mark_paid(payload.ids, user)

@router.post("/bulk/delete", response_model=BulkResult)
def bulk_delete(payload: BulkIds, db: Session = Depends(get_db),
                user: SessionUser = Depends(require_roles("finance"))):
    return CommissionService(db).bulk_delete(payload.ids, user)

@router.post("/partners/{partner_id}/deduct", response_model=DeductionResult)
def deduct_partner(partner_id: int, payload: DeductionRequest, db: Session = Depends(get_db),
                   user: SessionUser = Depends(require_roles("finance"))):
    return CommissionService(db).deduct(partner_id, payload.amount, user)
