import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from sensorhub.auth import ledger
from sensorhub.auth.deps import Identity, authenticate_token, ensure_admin_or_self, require_admin
from sensorhub.auth.models import User
from sensorhub.auth.router import user_out
from sensorhub.auth.security import hash_password, verify_password
from sensorhub.core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from sensorhub.core.pagination import pagination_out
from sensorhub.db.session import get_db
from sensorhub.users.schemas import PasswordChangeRequest, UserUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


@router.get("")
def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = Query(default=None, max_length=200),
    db: Session = Depends(get_db),
    admin: Identity = Depends(require_admin),
):
    stmt = select(User)
    count_stmt = select(func.count(User.id))
    if search:
        pattern = f"%{search}%"
        condition = or_(User.name.ilike(pattern), User.email.ilike(pattern))
        stmt = stmt.where(condition)
        count_stmt = count_stmt.where(condition)

    users = db.execute(
        stmt.order_by(User.registered_at.desc(), User.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    ).scalars().all()
    total = db.execute(count_stmt).scalar_one()

    return {
        "success": True,
        "data": {
            "users": [user_out(u) for u in users],
            "pagination": pagination_out(page, limit, int(total or 0)),
        },
    }


@router.get("/{user_id}")
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(authenticate_token),
):
    ensure_admin_or_self(identity, user_id, "Not allowed to view this user")
    user = _get_user_or_404(db, user_id)
    return {"success": True, "data": {"user": user_out(user)}}


@router.put("/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdateRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(authenticate_token),
):
    ensure_admin_or_self(identity, user_id, "Not allowed to update this user")
    if payload.role is not None and not identity.is_admin:
        raise AuthorizationError("Not allowed to change roles")

    if payload.name is None and payload.email is None and payload.role is None:
        raise ValidationError("No fields to update")

    user = _get_user_or_404(db, user_id)

    if payload.email is not None:
        email = str(payload.email)
        taken = db.execute(
            select(User.id).where(User.email == email, User.id != user_id)
        ).first()
        if taken:
            raise ConflictError("Email already in use")
        user.email = email
    if payload.name is not None:
        user.name = payload.name
    if payload.role is not None:
        # takes effect on the next request; sessions resolve the live role
        user.role = payload.role

    db.add(user)
    db.commit()
    db.refresh(user)

    return {
        "success": True,
        "message": "User updated successfully",
        "data": {"user": user_out(user)},
    }


@router.put("/{user_id}/password")
def change_password(
    user_id: int,
    payload: PasswordChangeRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(authenticate_token),
):
    ensure_admin_or_self(identity, user_id, "Not allowed to change this user's password")
    user = _get_user_or_404(db, user_id)

    if identity.id == user_id:
        if not payload.current_password:
            raise ValidationError("Current password is required")
        try:
            password_ok = verify_password(payload.current_password, user.password_hash)
        except ValueError:
            password_ok = False
        if not password_ok:
            raise AuthenticationError("Current password is incorrect")

    try:
        user.password_hash = hash_password(payload.new_password)
    except ValueError as e:
        raise ValidationError(str(e))
    db.add(user)
    revoked = ledger.revoke_all_for_user(db, user_id)
    db.commit()
    logger.info("Password changed for user %s; %s sessions revoked", user_id, revoked)

    return {"success": True, "message": "Password updated successfully"}


@router.delete("/{user_id}")
def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: Identity = Depends(require_admin),
):
    if admin.id == user_id:
        raise ValidationError("You cannot deactivate your own account")

    user = _get_user_or_404(db, user_id)
    user.is_active = False
    db.add(user)
    revoked = ledger.revoke_all_for_user(db, user_id)
    db.commit()
    logger.info("User %s deactivated by %s; %s sessions revoked", user_id, admin.id, revoked)

    return {"success": True, "message": f"User {user.name} deactivated successfully"}


@router.put("/{user_id}/activate")
def activate_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: Identity = Depends(require_admin),
):
    user = _get_user_or_404(db, user_id)
    user.is_active = True
    db.add(user)
    db.commit()
    logger.info("User %s reactivated by %s", user_id, admin.id)

    return {"success": True, "message": f"User {user.name} reactivated successfully"}
