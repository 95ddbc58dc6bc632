import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockdesk.models.user import ActivityLog, LoginHistory
from stockdesk.schemas.common import ErrorKind, OperationResult

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


# Writers never fail the calling operation; a lost audit row is logged and dropped.

def log_login_attempt(
    db: Session,
    username: str,
    success: bool,
    user_id: str | None = None,
    failure_reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    entry = LoginHistory(
        user_id=user_id,
        username=username,
        success=success,
        failure_reason=failure_reason,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to log login attempt for %s", username)


def log_activity(
    db: Session,
    user_id: str,
    username: str,
    action: str,
    resource_type: str | None = None,
    resource_id: str | None = None,
    details: dict[str, Any] | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    entry = ActivityLog(
        user_id=user_id,
        username=username,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to log user activity %s for %s", action, username)


def get_activity_logs(db: Session, user_id: str | None = None, limit: int = DEFAULT_LIMIT) -> OperationResult:
    try:
        q = db.query(ActivityLog)
        if user_id:
            q = q.filter(ActivityLog.user_id == user_id)
        logs = q.order_by(ActivityLog.created_at.desc()).limit(limit).all()
    except SQLAlchemyError:
        logger.exception("Get activity logs error")
        return OperationResult.fail("Failed to load activity logs", ErrorKind.PERSISTENCE)
    return OperationResult.ok(logs)


def get_login_history(db: Session, user_id: str | None = None, limit: int = DEFAULT_LIMIT) -> OperationResult:
    try:
        q = db.query(LoginHistory)
        if user_id:
            q = q.filter(LoginHistory.user_id == user_id)
        entries = q.order_by(LoginHistory.created_at.desc()).limit(limit).all()
    except SQLAlchemyError:
        logger.exception("Get login history error")
        return OperationResult.fail("Failed to load login history", ErrorKind.PERSISTENCE)
    return OperationResult.ok(entries)
