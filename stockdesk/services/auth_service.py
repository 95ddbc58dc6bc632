import logging
from datetime import datetime, timedelta, timezone
from enum import Enum as PyEnum

import bcrypt
import jwt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stockdesk.config import settings
from stockdesk.models.user import User
from stockdesk.schemas.common import ErrorKind, LoginResult, OperationResult
from stockdesk.schemas.user import UserCreate, UserPublic, UserUpdate
from stockdesk.services import audit_service, lockout_service
from stockdesk.services.validation import (
    first_error,
    validate_email,
    validate_full_name,
    validate_password,
    validate_username,
)
from stockdesk.time_utils import utcnow

logger = logging.getLogger(__name__)

# Returned for unknown usernames; login_history keeps the real reason
GENERIC_LOGIN_ERROR = "Invalid username or password"


class LoginFailure(str, PyEnum):
    USER_NOT_FOUND = "User not found"
    INVALID_CREDENTIALS = "Invalid credentials"
    ACCOUNT_LOCKED = "Account locked"
    # Store outage; reported to the caller only, never written to login_history
    SERVICE_UNAVAILABLE = "Service unavailable"


def _password_bytes(password: str) -> bytes:
    # bcrypt only considers the first 72 bytes
    return password.encode()[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(_password_bytes(password), hashed.encode())


def create_access_token(user_id: str, username: str, role: str) -> str:
    payload = {
        "sub": user_id,
        "username": username,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])
    except (jwt.ExpiredSignatureError, jwt.InvalidTokenError):
        return None


# Sign-in

def sign_in(
    db: Session,
    username: str,
    password: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> LoginResult:
    """
    Authenticate one login attempt.

    Shape validation runs first and is never audited. Every attempt past that point
    leaves a login_history row. Locked accounts are rejected before the password is
    looked at; a wrong password counts towards the lockout.
    """
    error = first_error(validate_username(username), validate_password(password))
    if error:
        return LoginResult(success=False, error=error)

    username = username.strip()

    def audit(success: bool, user_id: str | None = None, reason: LoginFailure | None = None) -> None:
        audit_service.log_login_attempt(
            db,
            username,
            success,
            user_id=user_id,
            failure_reason=reason.value if reason else None,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    try:
        lock_status = lockout_service.check_lock_status(db, username)
        if lock_status.is_locked:
            audit(False, reason=LoginFailure.ACCOUNT_LOCKED)
            return LoginResult(
                success=False,
                error="Account is temporarily locked due to multiple failed login attempts. Please try again later.",
                failure_reason=LoginFailure.ACCOUNT_LOCKED.value,
            )

        user = get_user_by_username(db, username)
        if not user:
            audit(False, reason=LoginFailure.USER_NOT_FOUND)
            return LoginResult(
                success=False, error=GENERIC_LOGIN_ERROR, failure_reason=LoginFailure.USER_NOT_FOUND.value
            )

        if not verify_password(password, user.password_hash):
            audit(False, user_id=user.id, reason=LoginFailure.INVALID_CREDENTIALS)
            lockout_service.record_failed_attempt(db, username)

            lock_status = lockout_service.check_lock_status(db, username)
            if lock_status.remaining_attempts > 0:
                return LoginResult(
                    success=False,
                    error=(
                        f"Invalid password. {lock_status.remaining_attempts} attempt(s) remaining "
                        "before account lockout."
                    ),
                    remaining_attempts=lock_status.remaining_attempts,
                    failure_reason=LoginFailure.INVALID_CREDENTIALS.value,
                )
            return LoginResult(
                success=False,
                error=(
                    "Account has been locked due to multiple failed login attempts. "
                    f"Please try again in {settings.LOCKOUT_MINUTES} minutes."
                ),
                remaining_attempts=0,
                failure_reason=LoginFailure.ACCOUNT_LOCKED.value,
            )

        if user.is_locked:
            audit(False, user_id=user.id, reason=LoginFailure.ACCOUNT_LOCKED)
            return LoginResult(
                success=False,
                error="Account is locked. Please contact admin or try again later.",
                failure_reason=LoginFailure.ACCOUNT_LOCKED.value,
            )

        lockout_service.record_successful_attempt(db, username)
        now = utcnow()
        user.last_login = now
        user.last_activity = now
        db.commit()
        db.refresh(user)

        audit(True, user_id=user.id)
        audit_service.log_activity(
            db, user.id, user.username, "LOGIN", "AUTH", user.id, ip_address=ip_address, user_agent=user_agent
        )
        return LoginResult(success=True, user=UserPublic.model_validate(user))
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Sign in error for %s", username)
        return LoginResult(
            success=False,
            error="Authentication service unavailable",
            failure_reason=LoginFailure.SERVICE_UNAVAILABLE.value,
        )


def sign_out(db: Session, actor: User, ip_address: str | None = None, user_agent: str | None = None) -> None:
    audit_service.log_activity(
        db, actor.id, actor.username, "LOGOUT", "AUTH", actor.id, ip_address=ip_address, user_agent=user_agent
    )


def touch_activity(db: Session, user_id: str) -> None:
    """Bump last_activity; called by the client's idle timer."""
    try:
        user = get_user_by_id(db, user_id)
        if user:
            user.last_activity = utcnow()
            db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error updating user activity for %s", user_id)


def record_dashboard_access(db: Session, actor: User) -> None:
    audit_service.log_activity(db, actor.id, actor.username, "DASHBOARD_ACCESS", "DASHBOARD")


# Accounts

def get_user_by_id(db: Session, user_id: str) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username.strip()).first()


def list_users(db: Session) -> OperationResult:
    try:
        users = db.query(User).order_by(User.created_at.desc()).all()
    except SQLAlchemyError:
        logger.exception("Get users error")
        return OperationResult.fail("Failed to load users", ErrorKind.PERSISTENCE)
    return OperationResult.ok(users)


def add_user(db: Session, data: UserCreate) -> OperationResult:
    error = first_error(
        validate_username(data.username),
        validate_password(data.password),
        validate_email(data.email),
        validate_full_name(data.full_name),
    )
    if error:
        return OperationResult.fail(error)

    user = User(
        username=data.username.strip(),
        password_hash=hash_password(data.password),
        email=data.email.strip(),
        full_name=data.full_name.strip(),
        phone=(data.phone or "").strip() or None,
        role=data.role,
    )
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        logger.info("Duplicate username or email for new user %s", data.username)
        return OperationResult.fail("Username or email already exists", ErrorKind.CONFLICT)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Add user error")
        return OperationResult.fail("Failed to add user", ErrorKind.PERSISTENCE)
    return OperationResult.ok(user)


def update_user(db: Session, user_id: str, data: UserUpdate) -> OperationResult:
    update_data = data.model_dump(exclude_unset=True)

    if update_data.get("email"):
        error = validate_email(update_data["email"])
        if error:
            return OperationResult.fail(error)
        update_data["email"] = update_data["email"].strip()
    else:
        update_data.pop("email", None)

    if update_data.get("full_name"):
        error = validate_full_name(update_data["full_name"])
        if error:
            return OperationResult.fail(error)
        update_data["full_name"] = update_data["full_name"].strip()
    else:
        update_data.pop("full_name", None)

    if "phone" in update_data:
        update_data["phone"] = (update_data["phone"] or "").strip() or None

    if not update_data.get("role"):
        update_data.pop("role", None)

    try:
        user = get_user_by_id(db, user_id)
        if not user:
            return OperationResult.fail("User not found", ErrorKind.NOT_FOUND)
        for field, value in update_data.items():
            setattr(user, field, value)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        return OperationResult.fail("Username or email already exists", ErrorKind.CONFLICT)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Update user error")
        return OperationResult.fail("Failed to update user", ErrorKind.PERSISTENCE)
    return OperationResult.ok(user)


def delete_user(db: Session, user_id: str) -> OperationResult:
    try:
        user = get_user_by_id(db, user_id)
        if not user:
            return OperationResult.fail("User not found", ErrorKind.NOT_FOUND)
        db.delete(user)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Delete user error")
        return OperationResult.fail("Failed to delete user", ErrorKind.PERSISTENCE)
    return OperationResult.ok()


def ensure_default_admin(db: Session) -> None:
    """Create default admin user if no users exist."""
    if db.query(User).count() == 0:
        result = add_user(
            db,
            UserCreate(
                username=settings.DEFAULT_ADMIN_USERNAME,
                password=settings.DEFAULT_ADMIN_PASSWORD,
                email=settings.DEFAULT_ADMIN_EMAIL,
                full_name="Administrator",
                role="admin",
            ),
        )
        if result.success:
            logger.info("Created default admin account %s", settings.DEFAULT_ADMIN_USERNAME)
        else:
            logger.error("Could not create default admin: %s", result.error)
