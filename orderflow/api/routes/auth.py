from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from orderflow.infrastructure.db import get_db
from orderflow.infrastructure.auth_local import create_access_token
from orderflow.application.schemas import TokenRequest, TokenResponse
from orderflow.application.user_service import UserService
from orderflow.core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/token", response_model=TokenResponse)
def issue_token(payload: TokenRequest, db: Session = Depends(get_db)):
    """Issue a bearer token for an active user."""
    user = UserService(db).get_by_username(payload.username)
    if not user or not user.is_active:
        logger.warning(f"Token refused for unknown or inactive user {payload.username}")
        raise HTTPException(status_code=401, detail="Unknown or inactive user")
    return TokenResponse(
        access_token=create_access_token(user.username, user.id, user.role),
        role=user.role,
        user_id=user.id,
    )
