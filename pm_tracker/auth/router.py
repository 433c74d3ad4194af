from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..deps import get_settings
from ..models.models import User
from ..schemas.auth import LoginRequest, TokenResponse, MeResponse
from .security import (
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_active_user,
    get_current_user,
)


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = db.query(User).filter(User.username == req.identifier).first()
    if not user or not user.is_active or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    access = create_access_token(settings, str(user.id))
    refresh = create_refresh_token(settings, str(user.id))
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    return TokenResponse(access_token=access, refresh_token=refresh)


@router.post("/refresh", response_model=TokenResponse)
def refresh(token: str, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    # Refresh tokens are not persisted or rotated; a disabled or removed user gets nothing new
    payload = decode_token(settings, token)
    if payload.get("type") != "refresh":
        raise HTTPException(status_code=400, detail="Invalid refresh token")
    user_id = str(get_active_user(db, payload).id)
    return TokenResponse(
        access_token=create_access_token(settings, user_id),
        refresh_token=create_refresh_token(settings, user_id),
    )


@router.get("/me", response_model=MeResponse)
def me(user: User = Depends(get_current_user)):
    return user
