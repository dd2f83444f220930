import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sensorhub.audit.models import LoginLog

logger = logging.getLogger(__name__)


def write_login_log(
    db: Session,
    *,
    email: str,
    success: bool,
    ip_address: str | None,
    user_agent: str | None,
    message: str,
    user_id: int | None = None,
) -> None:
    log = LoginLog(
        user_id=user_id,
        email=email,
        success=success,
        ip_address=ip_address,
        user_agent=user_agent,
        message=message,
    )
    try:
        db.add(log)
        db.commit()
    except SQLAlchemyError:
        # audit rows are best effort; a failed write must not change the login outcome
        db.rollback()
        logger.exception("Failed to record login attempt for %s", email)
