"""Session ledger: the server-side record that decides whether a token is live.

A signed token is only honoured while its session row is active and
unexpired. Every function here works inside the caller's ORM session and
leaves committing to the caller, so token issuance and persistence land in
one transaction.
"""

import secrets
from datetime import datetime
from typing import NamedTuple

from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from sensorhub.auth.models import User, UserSession


class ActiveSession(NamedTuple):
    session: UserSession
    user: User


def new_session_id() -> str:
    return secrets.token_hex(16)


def create_session(
    db: Session,
    *,
    user_id: int,
    access_token: str,
    refresh_token: str | None,
    expires_at: datetime,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> str:
    row = UserSession(
        id=new_session_id(),
        user_id=user_id,
        token=access_token,
        refresh_token=refresh_token,
        expires_at=expires_at,
        active=True,
        ip_address=ip_address,
        user_agent=user_agent,
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.flush()
    return row.id


def _active_by(db: Session, column, value: str) -> ActiveSession | None:
    now = datetime.utcnow()
    row = db.execute(
        select(UserSession, User)
        .join(User, UserSession.user_id == User.id)
        .where(
            column == value,
            UserSession.active.is_(True),
            UserSession.expires_at > now,
        )
    ).first()
    if row is None:
        return None
    return ActiveSession(session=row[0], user=row[1])


def lookup_active(db: Session, access_token: str) -> ActiveSession | None:
    """Return the live session for ``access_token`` with its owner's current row."""
    return _active_by(db, UserSession.token, access_token)


def lookup_active_by_refresh(db: Session, refresh_token: str) -> ActiveSession | None:
    return _active_by(db, UserSession.refresh_token, refresh_token)


def revoke(db: Session, access_token: str) -> int:
    result = db.execute(
        update(UserSession)
        .where(UserSession.token == access_token, UserSession.active.is_(True))
        .values({UserSession.active: False})
    )
    return result.rowcount or 0


def revoke_all_for_user(db: Session, user_id: int) -> int:
    result = db.execute(
        update(UserSession)
        .where(UserSession.user_id == user_id, UserSession.active.is_(True))
        .values({UserSession.active: False})
    )
    return result.rowcount or 0


def refresh_session(
    db: Session,
    session_id: str,
    *,
    access_token: str,
    refresh_token: str,
    expires_at: datetime,
) -> UserSession | None:
    row = db.get(UserSession, session_id)
    if row is None:
        return None
    row.token = access_token
    row.refresh_token = refresh_token
    row.expires_at = expires_at
    db.add(row)
    db.flush()
    return row


def reap(db: Session) -> int:
    """Delete expired or inactive sessions and return how many went away."""
    now = datetime.utcnow()
    result = db.execute(
        delete(UserSession).where(
            or_(UserSession.expires_at < now, UserSession.active.is_(False))
        )
    )
    return result.rowcount or 0
