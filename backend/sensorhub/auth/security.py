import secrets
from datetime import datetime, timedelta
from typing import Any, Dict

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from sensorhub.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

ENV = settings.ENV
JWT_SECRET = settings.JWT_SECRET
if not JWT_SECRET and ENV != "dev":
    raise RuntimeError("JWT_SECRET is not set")
if not JWT_SECRET:
    JWT_SECRET = "dev-change-me"
JWT_ALG = "HS256"

ACCESS_TOKEN_TTL = timedelta(minutes=settings.JWT_ACCESS_EXP_MINUTES)
REFRESH_TOKEN_TTL = timedelta(days=settings.JWT_REFRESH_EXP_DAYS)

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


class TokenError(ValueError):
    pass


class InvalidSignature(TokenError):
    pass


class TokenExpired(TokenError):
    pass


def _ensure_bcrypt_limit(password: str) -> None:
    # bcrypt limit is 72 BYTES, not characters
    if len(password.encode("utf-8")) > 72:
        raise ValueError("Password too long (max 72 bytes).")


def hash_password(password: str) -> str:
    _ensure_bcrypt_limit(password)
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    _ensure_bcrypt_limit(password)
    return pwd_context.verify(password, password_hash)


def issue_token(
    user_id: int,
    claims: Dict[str, Any],
    ttl: timedelta,
    token_type: str = TOKEN_TYPE_ACCESS,
) -> tuple[str, datetime]:
    """Sign a token for ``user_id`` that expires ``ttl`` from now.

    ``jti`` keeps tokens distinct even when the same user logs in twice
    within one second; the session table stores tokens under a unique key.
    """
    issued_at = datetime.utcnow()
    expires_at = issued_at + ttl
    to_encode = dict(claims)
    to_encode.update(
        {
            "sub": str(user_id),
            "typ": token_type,
            "jti": secrets.token_urlsafe(16),
            "iat": issued_at,
            "exp": expires_at,
        }
    )
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALG), expires_at


def _identity_claims(user) -> Dict[str, Any]:
    # advisory only; authorization always reads the live user row
    return {"correo": user.email, "nombre": user.name, "rol": user.role}


def create_access_token(user) -> tuple[str, datetime]:
    return issue_token(user.id, _identity_claims(user), ACCESS_TOKEN_TTL, TOKEN_TYPE_ACCESS)


def create_refresh_token(user) -> tuple[str, datetime]:
    return issue_token(user.id, _identity_claims(user), REFRESH_TOKEN_TTL, TOKEN_TYPE_REFRESH)


def verify_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])
    except ExpiredSignatureError as exc:
        raise TokenExpired("Token expired") from exc
    except JWTError as exc:
        raise InvalidSignature("Invalid token") from exc


def access_token_ttl_label() -> str:
    minutes = settings.JWT_ACCESS_EXP_MINUTES
    if minutes % 60 == 0:
        return f"{minutes // 60}h"
    return f"{minutes}m"


__all__ = [
    "InvalidSignature",
    "TokenError",
    "TokenExpired",
    "access_token_ttl_label",
    "create_access_token",
    "create_refresh_token",
    "hash_password",
    "issue_token",
    "verify_password",
    "verify_token",
]
