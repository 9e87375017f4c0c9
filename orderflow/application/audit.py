from typing import Optional
from sqlalchemy.orm import Session
from orderflow.domain.models import AuditLog
from orderflow.core.logging_config import get_logger
from .common import SessionUser

logger = get_logger(__name__)

class AuditService:
    """Business-level action log, written in the caller's transaction."""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        actor: Optional[SessionUser],
        action: str,
        entity: str,
        entity_id: Optional[int],
        description: str,
        level: str = "info",
    ) -> AuditLog:
        entry = AuditLog(
            user_id=actor.id if actor else None,
            username=actor.username if actor else None,
            role=actor.role if actor else None,
            action=action,
            entity=entity,
            entity_id=entity_id,
            description=description,
            level=level,
        )
        self.db.add(entry)
        logger.info(
            description,
            extra={'extra_fields': {'action': action, 'entity': entity, 'entity_id': entity_id}}
        )
        return entry

    def list(self, entity: Optional[str] = None, limit: int = 200):
        query = self.db.query(AuditLog)
        if entity:
            query = query.filter(AuditLog.entity == entity)
        return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
