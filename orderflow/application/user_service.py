from decimal import Decimal
from typing import Optional
from fastapi import HTTPException
from sqlalchemy.orm import Session
from orderflow.domain.models import User
from orderflow.domain.money import to_decimal
from orderflow.core_settings import get_settings
from .schemas import UserCreate
from .common import SessionUser, get_or_404
from .audit import AuditService

class UserService:
    def __init__(self, db: Session):
        self.db = db

    def list(self, role: Optional[str] = None):
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.id).all()

    def get_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def require(self, user_id: Optional[int], role: str, label: Optional[str] = None) -> Optional[User]:
        """Load a user that must exist, be active, and hold `role`."""
        if user_id is None:
            return None
        user = self.db.get(User, user_id)
        if user is None or not user.is_active or user.role != role:
            raise HTTPException(status_code=422, detail=f"{label or role} {user_id} is not an active {role}")
        return user

    def default_rate(self, role: str) -> Optional[Decimal]:
        settings = get_settings()
        if role == "vendor":
            return to_decimal(settings.DEFAULT_VENDOR_COMMISSION_RATE)
        if role == "partner":
            return to_decimal(settings.DEFAULT_PARTNER_COMMISSION_RATE)
        return None

    def create(self, data: UserCreate, actor: SessionUser) -> User:
        if self.get_by_username(data.username):
            raise HTTPException(status_code=409, detail="Username already exists")
        rate = to_decimal(data.commission_rate) if data.commission_rate is not None else self.default_rate(data.role)
        user = User(
            username=data.username,
            name=data.name,
            role=data.role,
            email=data.email,
            commission_rate=rate,
        )
        self.db.add(user)
        self.db.flush()
        AuditService(self.db).record(actor, "CREATE", "user", user.id, f"User {user.username} created with role {user.role}", "success")
        self.db.commit()
        self.db.refresh(user)
        return user

    def update_commission_rate(self, user_id: int, rate: float, actor: SessionUser) -> User:
        """Change a payee's rate. Commissions already accrued keep their own percentage."""
        user = get_or_404(self.db, User, user_id, "User")
        if user.role not in ("vendor", "partner"):
            raise HTTPException(status_code=422, detail="Only vendors and partners earn commissions")
        previous = user.commission_rate
        user.commission_rate = to_decimal(rate)
        AuditService(self.db).record(
            actor, "UPDATE", "user", user.id,
            f"Commission rate of {user.username} changed from {previous} to {user.commission_rate}"
        )
        self.db.commit()
        self.db.refresh(user)
        return user
