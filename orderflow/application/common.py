from datetime import datetime, timezone
from typing import Callable, Optional, Type, TypeVar
from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from orderflow.core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

NUMBER_ATTEMPTS = 3

class SessionUser(BaseModel):
    """The authenticated caller, passed explicitly into every service call."""
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    role: str

    def has_role(self, *roles: str) -> bool:
        return self.role in roles

def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Columns store naive UTC; normalise aware datetimes from requests."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

def get_or_404(db: Session, model: Type[T], obj_id: int, label: str) -> T:
    obj = db.get(model, obj_id)
    if obj is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj

def next_number(db: Session, column, prefix: str) -> str:
    """Sequential document number in format PREFIX-YYYY-NNNNN."""
    stem = f"{prefix}-{datetime.now().year}-"
    last = db.query(func.max(column)).filter(column.like(f"{stem}%")).scalar()
    sequence = int(last[len(stem):]) + 1 if last else 1
    return f"{stem}{sequence:05d}"

def with_number_retry(db: Session, create: Callable[[], T], label: str) -> T:
    """Run `create` until the document number it allocates is free.

    `create` numbers, flushes and commits in one go. A concurrent request that
    took the same number makes the flush fail on the unique index; the
    transaction is rolled back and `create` runs again with a fresh number.
    """
    for attempt in range(1, NUMBER_ATTEMPTS + 1):
        try:
            return create()
        except IntegrityError:
            db.rollback()
            logger.warning(f"{label} number already taken, attempt {attempt} of {NUMBER_ATTEMPTS}")
    raise HTTPException(status_code=409, detail=f"Could not allocate a {label} number, please retry")
