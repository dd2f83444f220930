import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sensorhub.audit.service import write_login_log
from sensorhub.auth import ledger
from sensorhub.auth.deps import Identity, authenticate_token, get_request_token, optional_auth
from sensorhub.auth.models import ROLE_USER, User
from sensorhub.auth.schemas import LoginRequest, RefreshRequest, RegisterRequest
from sensorhub.auth.security import (
    TOKEN_TYPE_REFRESH,
    TokenError,
    access_token_ttl_label,
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_token,
)
from sensorhub.core.errors import AuthenticationError, AuthorizationError, ConflictError, ValidationError
from sensorhub.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_meta(request: Request) -> tuple[str | None, str]:
    client_ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent", "")
    return client_ip, user_agent[:512]


def user_out(user: User) -> dict:
    return {
        "id": user.id,
        "nombre": user.name,
        "correo": user.email,
        "rol": user.role,
        "activo": user.is_active,
        "fecha_registro": user.registered_at,
        "ultimo_acceso": user.last_access_at,
    }


def identity_out(identity: Identity) -> dict:
    return {
        "id": identity.id,
        "nombre": identity.name,
        "correo": identity.email,
        "rol": identity.role,
        "fecha_registro": identity.registered_at,
    }


@router.post("/login")
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    email = str(payload.email)
    client_ip, user_agent = _client_meta(request)

    user = db.execute(
        select(User).where(User.email == email, User.is_active.is_(True))
    ).scalar_one_or_none()
    if not user:
        write_login_log(
            db, email=email, success=False, ip_address=client_ip, user_agent=user_agent,
            message="User not found or inactive",
        )
        raise AuthenticationError("Invalid credentials")

    try:
        password_ok = verify_password(payload.password, user.password_hash)
    except ValueError:
        password_ok = False

    if not password_ok:
        write_login_log(
            db, email=email, success=False, ip_address=client_ip, user_agent=user_agent,
            message="Wrong password", user_id=user.id,
        )
        raise AuthenticationError("Invalid credentials")

    access_token, _ = create_access_token(user)
    refresh_token, refresh_expires_at = create_refresh_token(user)

    # the session outlives single access tokens; it ends with the refresh token
    ledger.create_session(
        db,
        user_id=user.id,
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=refresh_expires_at,
        ip_address=client_ip,
        user_agent=user_agent,
    )
    user.last_access_at = datetime.utcnow()
    db.add(user)
    db.commit()
    db.refresh(user)

    write_login_log(
        db, email=email, success=True, ip_address=client_ip, user_agent=user_agent,
        message="Login successful", user_id=user.id,
    )
    logger.info("User %s logged in from %s", user.id, client_ip)

    return {
        "success": True,
        "message": "Login successful",
        "data": {
            "user": user_out(user),
            "token": access_token,
            "refreshToken": refresh_token,
            "expiresIn": access_token_ttl_label(),
        },
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    caller: Identity | None = Depends(optional_auth),
):
    if payload.role != ROLE_USER and not (caller and caller.is_admin):
        raise AuthorizationError("Only administrators can assign elevated roles")

    email = str(payload.email)
    existing = db.execute(select(User.id).where(User.email == email)).first()
    if existing:
        raise ConflictError("Email already registered")

    try:
        pw_hash = hash_password(payload.password)
    except ValueError as e:
        raise ValidationError(str(e))

    user = User(
        name=payload.name,
        email=email,
        password_hash=pw_hash,
        role=payload.role,
        is_active=True,
        registered_at=datetime.utcnow(),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already registered")
    db.refresh(user)
    logger.info("Registered user %s with role %s", user.id, user.role)

    return {
        "success": True,
        "message": "User registered successfully",
        "data": {"user": user_out(user)},
    }


@router.post("/refresh")
def refresh(payload: RefreshRequest, db: Session = Depends(get_db)):
    if not payload.refresh_token:
        raise AuthenticationError("Refresh token required")

    try:
        claims = verify_token(payload.refresh_token)
    except TokenError:
        raise AuthenticationError("Invalid refresh token")

    if claims.get("typ") != TOKEN_TYPE_REFRESH:
        raise AuthenticationError("Invalid token type")

    active = ledger.lookup_active_by_refresh(db, payload.refresh_token)
    if active is None:
        raise AuthenticationError("Invalid or expired refresh token")

    user = active.user
    access_token, _ = create_access_token(user)
    new_refresh_token, refresh_expires_at = create_refresh_token(user)

    # rotate in place; the previous access token stops resolving immediately
    ledger.refresh_session(
        db,
        active.session.id,
        access_token=access_token,
        refresh_token=new_refresh_token,
        expires_at=refresh_expires_at,
    )
    db.commit()

    return {
        "success": True,
        "message": "Token refreshed",
        "data": {
            "token": access_token,
            "refreshToken": new_refresh_token,
            "expiresIn": access_token_ttl_label(),
        },
    }


@router.post("/logout")
def logout(
    request: Request,
    identity: Identity = Depends(authenticate_token),
    db: Session = Depends(get_db),
):
    ledger.revoke(db, get_request_token(request))
    db.commit()
    logger.info("User %s logged out", identity.id)
    return {"success": True, "message": "Logout successful"}


@router.get("/me")
def me(identity: Identity = Depends(authenticate_token)):
    return {"success": True, "data": {"user": identity_out(identity)}}
