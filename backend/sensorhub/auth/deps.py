import logging
from dataclasses import dataclass
from datetime import datetime

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sensorhub.auth.ledger import ActiveSession, lookup_active
from sensorhub.auth.models import ROLE_ADMIN
from sensorhub.auth.security import TokenExpired, TokenError, verify_token
from sensorhub.core.errors import AuthenticationError, AuthorizationError
from sensorhub.db.session import get_db

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    id: int
    name: str
    email: str
    role: str
    registered_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def from_active(cls, active: ActiveSession) -> "Identity":
        user = active.user
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            registered_at=user.registered_at,
        )


def _attach(request: Request, identity: Identity, token: str) -> None:
    request.state.identity = identity
    request.state.token = token


def authenticate_token(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> Identity:
    if not creds or not creds.credentials:
        raise AuthenticationError("Access token required")

    token = creds.credentials
    try:
        verify_token(token)
    except TokenExpired:
        raise AuthenticationError("Token expired")
    except TokenError:
        raise AuthenticationError("Invalid token")

    active = lookup_active(db, token)
    if active is None:
        # never issued, revoked and row-expired all look the same to the caller
        raise AuthenticationError("Invalid or expired token")

    identity = Identity.from_active(active)
    _attach(request, identity, token)
    return identity


def optional_auth(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> Identity | None:
    request.state.identity = None
    request.state.token = None
    if not creds or not creds.credentials:
        return None

    token = creds.credentials
    try:
        verify_token(token)
        active = lookup_active(db, token)
    except TokenError:
        return None
    except SQLAlchemyError:
        logger.warning("Session lookup failed; continuing anonymously", exc_info=True)
        return None

    if active is None:
        return None

    identity = Identity.from_active(active)
    _attach(request, identity, token)
    return identity


def get_request_token(request: Request) -> str:
    token = getattr(request.state, "token", None)
    if not token:
        raise AuthenticationError("Access token required")
    return token


def require_admin(identity: Identity = Depends(authenticate_token)) -> Identity:
    if not identity.is_admin:
        raise AuthorizationError("Administrator role required")
    return identity


def ensure_admin_or_self(identity: Identity, target_user_id: int, detail: str | None = None) -> None:
    if identity.is_admin or identity.id == target_user_id:
        return
    raise AuthorizationError(detail or "Not allowed to act on this user")
