"""
Account lockout tracking.

Each account carries a failed-attempt counter. Reaching MAX_LOGIN_ATTEMPTS locks the
account for LOCKOUT_MINUTES; the lock is cleared lazily by the first status check
after it expires. Counter updates are issued as SQL-side expressions and committed
together so concurrent failures cannot lose an increment.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockdesk.config import settings
from stockdesk.models.user import User
from stockdesk.time_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockStatus:
    is_locked: bool
    remaining_attempts: int
    locked_until: datetime | None = None


def lockout_duration() -> timedelta:
    return timedelta(minutes=settings.LOCKOUT_MINUTES)


def _unlocked() -> LockStatus:
    return LockStatus(is_locked=False, remaining_attempts=settings.MAX_LOGIN_ATTEMPTS)


def check_lock_status(db: Session, username: str) -> LockStatus:
    """
    Read the lock state for ``username``, clearing an expired lock on the way.

    Unknown usernames and store errors report the account as unlocked with the full
    attempt budget; the credential check that follows rejects them anyway.
    """
    username = username.strip()
    try:
        row = db.execute(
            select(User.is_locked, User.locked_until, User.failed_login_attempts).where(User.username == username)
        ).first()
        if row is None:
            return _unlocked()

        now = utcnow()
        if row.is_locked and row.locked_until is not None and now > row.locked_until:
            db.execute(
                update(User)
                .where(User.username == username, User.is_locked.is_(True), User.locked_until < now)
                .values(is_locked=False, locked_until=None, failed_login_attempts=0)
                .execution_options(synchronize_session=False)
            )
            db.commit()
            logger.info("Lockout for %s expired; account unlocked", username)
            return _unlocked()

        remaining = max(0, settings.MAX_LOGIN_ATTEMPTS - (row.failed_login_attempts or 0))
        return LockStatus(is_locked=bool(row.is_locked), remaining_attempts=remaining, locked_until=row.locked_until)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Lock status lookup failed for %s", username)
        return _unlocked()


def record_failed_attempt(db: Session, username: str) -> None:
    username = username.strip()
    try:
        db.execute(
            update(User)
            .where(User.username == username)
            .values(failed_login_attempts=User.failed_login_attempts + 1)
            .execution_options(synchronize_session=False)
        )
        locked = db.execute(
            update(User)
            .where(User.username == username, User.failed_login_attempts >= settings.MAX_LOGIN_ATTEMPTS)
            .values(is_locked=True, locked_until=utcnow() + lockout_duration())
            .execution_options(synchronize_session=False)
        ).rowcount
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error updating failed login attempts for %s", username)
        return

    if locked:
        logger.warning("Account %s locked for %d minutes after repeated failures", username, settings.LOCKOUT_MINUTES)


def record_successful_attempt(db: Session, username: str) -> None:
    username = username.strip()
    try:
        db.execute(
            update(User)
            .where(User.username == username)
            .values(failed_login_attempts=0)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error resetting failed login attempts for %s", username)
