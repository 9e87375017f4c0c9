from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session
from orderflow.infrastructure.db import get_db
from orderflow.infrastructure.auth_local import decode_access_token
from orderflow.application.common import SessionUser
from orderflow.domain.models import User
from orderflow.core.logging_config import set_request_context

BEARER_PREFIX = "Bearer "

def get_session_user(request: Request, db: Session = Depends(get_db)) -> SessionUser:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="Missing token")
    token = auth_header.split(" ", 1)[1]
    token_data = decode_access_token(token)
    if not token_data or "uid" not in token_data:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = db.get(User, token_data["uid"])
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="User is inactive or no longer exists")
    set_request_context(user_id=str(user.id))
    return SessionUser(id=user.id, username=user.username, role=user.role)

def require_roles(*roles: str):
    """Dependency factory: the caller must hold one of `roles` (admin always passes)."""
    def checker(user: SessionUser = Depends(get_session_user)) -> SessionUser:
        if user.role != "admin" and user.role not in roles:
            raise HTTPException(status_code=403, detail=f"Requires role: {', '.join(roles)}")
        return user
    return checker
