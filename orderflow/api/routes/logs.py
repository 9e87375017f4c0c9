from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from orderflow.infrastructure.db import get_db
from orderflow.application.schemas import AuditLogRead
from orderflow.application.audit import AuditService
from orderflow.application.common import SessionUser
from orderflow.api.deps import require_roles

router = APIRouter(prefix="/api/logs", tags=["logs"])

@router.get("/", response_model=list[AuditLogRead])
def list_logs(entity: Optional[str] = None, limit: int = Query(200, ge=1, le=1000),
              db: Session = Depends(get_db), user: SessionUser = Depends(require_roles("admin"))):
    return AuditService(db).list(entity=entity, limit=limit)
