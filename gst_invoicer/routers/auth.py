from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy.orm import Session

from gst_invoicer.core.deps import get_current_user, log_auth_event, oauth2_scheme
from gst_invoicer.core.security import (
    create_access_token,
    decode_token,
    get_password_hash,
    token_expiry,
    verify_password,
)
from gst_invoicer.core.settings import settings
from gst_invoicer.core.token_blacklist import revoke_token
from gst_invoicer.db.session import get_db
from gst_invoicer.models.audit import ActivityLog
from gst_invoicer.models.user import User
from gst_invoicer.schemas.user import LoginResponse, UserCreate, UserRead
from gst_invoicer.services.activity import log_activity

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _login_rate_limited(db: Session, *, email: str, client_ip: str) -> bool:
    window_start = datetime.now(timezone.utc) - timedelta(minutes=settings.login_window_minutes)
    recent = (
        db.query(ActivityLog)
        .filter(
            ActivityLog.type == "USER_LOGIN_FAILED",
            ActivityLog.created_at >= window_start,
        )
        .order_by(ActivityLog.created_at.desc())
        .limit(200)
        .all()
    )
    hits = 0
    for log in recent:
        payload = log.payload_json or {}
        if payload.get("email") == email or payload.get("ip") == client_ip:
            hits += 1
    return hits >= settings.login_max_attempts


@router.post("/signup", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def signup(
    request: Request,
    user_in: UserCreate,
    db: Session = Depends(get_db),
) -> User:
    existing = db.query(User).filter(User.email == user_in.email).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = User(
        email=user_in.email,
        full_name=user_in.full_name,
        hashed_password=get_password_hash(user_in.password),
        is_active=True,
    )
    db.add(user)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="USER_SIGNUP",
        message="User signed up",
        payload={"email": user.email},
    )
    db.commit()
    db.refresh(user)
    log_auth_event("signup", request=request, extra={"user_id": user.id})
    return user


@router.post("/login", response_model=LoginResponse)
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> LoginResponse:
    email = form_data.username.strip().lower()
    client_ip = request.client.host if request.client else "unknown"
    user = db.query(User).filter(User.email == email).first()
    password_valid = bool(user and verify_password(form_data.password, user.hashed_password))
    rate_limited = _login_rate_limited(db, email=email, client_ip=client_ip)

    if not password_valid:
        if rate_limited:
            log_activity(
                db,
                actor_user_id=None,
                activity_type="USER_LOGIN_RATE_LIMIT",
                message="Login rate limited",
                payload={"email": email, "ip": client_ip},
            )
            db.commit()
            log_auth_event("login_rate_limited", request=request, extra={"email": email})
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many login attempts")
        log_activity(
            db,
            actor_user_id=None,
            activity_type="USER_LOGIN_FAILED",
            message="Login failed",
            payload={"email": email, "ip": client_ip},
        )
        db.commit()
        log_auth_event("login_failed", request=request, extra={"email": email})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Incorrect email or password")
    if not user.is_active:
        log_auth_event("login_inactive", request=request, extra={"user_id": user.id})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is inactive")

    now = datetime.now(timezone.utc)
    user.last_login_at = now
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="USER_LOGIN",
        message="User logged in",
        payload={"at": now.isoformat()},
    )
    db.commit()
    db.refresh(user)
    log_auth_event("login", request=request, extra={"user_id": user.id})

    token = create_access_token({"sub": str(user.id)})
    return LoginResponse(access_token=token, user=UserRead.model_validate(user))


@router.post("/logout", response_model=dict)
def logout(
    request: Request,
    token: str = Depends(oauth2_scheme),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Revoke the presented access token."""
    try:
        expires_at = token_expiry(decode_token(token))
    except JWTError:
        # get_current_user already validated it; expiry may have passed in between.
        expires_at = datetime.now(timezone.utc)
    revoke_token(db, token, expires_at)

    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="USER_LOGOUT",
        message="User logged out",
    )
    db.commit()

    log_auth_event("logout", request=request, extra={"user_id": current_user.id})
    return {"status": "ok", "message": "Logged out successfully"}


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(get_current_user)) -> User:
    return current_user
