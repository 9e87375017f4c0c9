from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from orderflow.infrastructure.db import get_db
from orderflow.application.schemas import UserCreate, UserRead, CommissionRateUpdate
from orderflow.application.user_service import UserService
from orderflow.application.common import SessionUser
from orderflow.api.deps import get_session_user, require_roles

router = APIRouter(prefix="/api/users", tags=["users"])

@router.get("/", response_model=list[UserRead])
def list_users(role: Optional[str] = None, db: Session = Depends(get_db),
               user: SessionUser = Depends(require_roles("admin"))):
    return UserService(db).list(role)

@router.get("/me", response_model=UserRead)
def current_user(db: Session = Depends(get_db), user: SessionUser = Depends(get_session_user)):
    return UserService(db).get_by_username(user.username)

@router.post("/", response_model=UserRead, status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db),
                user: SessionUser = Depends(require_roles("admin"))):
    return UserService(db).create(payload, user)

@router.put("/{user_id}/commission-rate", response_model=UserRead)
def update_commission_rate(user_id: int, payload: CommissionRateUpdate, db: Session = Depends(get_db),
                           user: SessionUser = Depends(require_roles("admin"))):
    """Change a payee's rate; already accrued commissions keep theirs."""
    return UserService(db).update_commission_rate(user_id, payload.commission_rate, user)
