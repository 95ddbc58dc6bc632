from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from conftest import ADMIN_PASSWORD, USER_PASSWORD
from stockdesk.models.user import ActivityLog, LoginHistory, User
from stockdesk.schemas.common import ErrorKind
from stockdesk.schemas.user import UserCreate, UserUpdate
from stockdesk.services import auth_service, lockout_service
from stockdesk.services.auth_service import LoginFailure
from stockdesk.time_utils import utcnow


def _history(db) -> list[LoginHistory]:
    return db.query(LoginHistory).order_by(LoginHistory.created_at).all()


class TestPasswords:
    def test_hash_is_not_plaintext(self):
        hashed = auth_service.hash_password("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert auth_service.verify_password("s3cret-pass", hashed)
        assert not auth_service.verify_password("wrong-pass", hashed)

    def test_token_round_trip(self):
        token = auth_service.create_access_token("abc", "admin1", "admin")
        payload = auth_service.decode_token(token)
        assert payload["sub"] == "abc"
        assert payload["role"] == "admin"
        assert auth_service.decode_token(token + "x") is None


class TestSignIn:
    def test_success_on_first_try(self, db, admin):
        result = auth_service.sign_in(db, "admin1", ADMIN_PASSWORD, ip_address="10.0.0.1", user_agent="pytest")

        assert result.success is True
        assert result.user.username == "admin1"
        assert result.user.role == "admin"
        assert result.user.is_locked is False
        dumped = result.user.model_dump()
        assert "password_hash" not in dumped
        assert "failed_login_attempts" not in dumped

        db.expire_all()
        user = db.get(User, admin.id)
        assert user.last_login is not None
        assert user.last_activity == user.last_login
        assert user.failed_login_attempts == 0

        history = _history(db)
        assert len(history) == 1
        assert history[0].success is True
        assert history[0].user_id == admin.id
        assert history[0].ip_address == "10.0.0.1"

        activity = db.query(ActivityLog).all()
        assert len(activity) == 1
        assert activity[0].action == "LOGIN"
        assert activity[0].resource_type == "AUTH"
        assert activity[0].resource_id == admin.id

    def test_validation_failure_writes_nothing(self, db, admin):
        result = auth_service.sign_in(db, "ab", ADMIN_PASSWORD)
        assert result.success is False
        assert result.error == "Username must be at least 3 characters"
        assert result.failure_reason is None

        result = auth_service.sign_in(db, "admin1", "123")
        assert result.error == "Password must be at least 6 characters"
        assert _history(db) == []
        assert db.get(User, admin.id).failed_login_attempts == 0

    def test_unknown_user_is_logged_without_user_id(self, db):
        result = auth_service.sign_in(db, "nobody_here", "whatever1")
        assert result.success is False
        assert result.error == "Invalid username or password"
        assert result.failure_reason == LoginFailure.USER_NOT_FOUND

        [entry] = _history(db)
        assert entry.user_id is None
        assert entry.username == "nobody_here"
        assert entry.failure_reason == "User not found"

    def test_three_failures_lock_and_fourth_attempt_is_refused(self, db, admin):
        first = auth_service.sign_in(db, "admin1", "wrong-password")
        second = auth_service.sign_in(db, "admin1", "wrong-password")
        third = auth_service.sign_in(db, "admin1", "wrong-password")

        assert (first.success, first.remaining_attempts) == (False, 2)
        assert "2 attempt(s) remaining" in first.error
        assert (second.success, second.remaining_attempts) == (False, 1)
        assert third.success is False
        assert third.failure_reason == LoginFailure.ACCOUNT_LOCKED
        assert third.error.startswith("Account has been locked")
        assert "15 minutes" in third.error

        db.expire_all()
        user = db.get(User, admin.id)
        assert user.is_locked is True
        assert user.locked_until > utcnow()

        fourth = auth_service.sign_in(db, "admin1", ADMIN_PASSWORD)
        assert fourth.success is False
        assert fourth.failure_reason == LoginFailure.ACCOUNT_LOCKED
        assert "temporarily locked" in fourth.error

        reasons = [h.failure_reason for h in _history(db)]
        assert reasons == ["Invalid credentials"] * 3 + ["Account locked"]

    def test_locked_account_skips_password_check(self, db, admin, monkeypatch):
        admin.is_locked = True
        admin.locked_until = utcnow() + timedelta(minutes=10)
        db.commit()

        def fail_if_called(*args, **kwargs):
            raise AssertionError("password compared while locked")

        monkeypatch.setattr(auth_service, "verify_password", fail_if_called)
        result = auth_service.sign_in(db, "admin1", ADMIN_PASSWORD)
        assert result.success is False
        assert result.failure_reason == LoginFailure.ACCOUNT_LOCKED

    def test_login_succeeds_after_lock_expires(self, db, admin):
        for _ in range(3):
            auth_service.sign_in(db, "admin1", "wrong-password")
        db.expire_all()
        user = db.get(User, admin.id)
        user.locked_until = utcnow() - timedelta(minutes=1)
        db.commit()

        result = auth_service.sign_in(db, "admin1", ADMIN_PASSWORD)
        assert result.success is True

        db.expire_all()
        user = db.get(User, admin.id)
        assert user.is_locked is False
        assert user.failed_login_attempts == 0

    def test_success_resets_failed_attempts(self, db, staff):
        auth_service.sign_in(db, "staff_user", "wrong-password")
        auth_service.sign_in(db, "staff_user", "wrong-password")
        assert auth_service.sign_in(db, "staff_user", USER_PASSWORD).success is True

        db.expire_all()
        assert db.get(User, staff.id).failed_login_attempts == 0
        assert lockout_service.check_lock_status(db, "staff_user").remaining_attempts == 3

    def test_stale_lock_flag_blocks_correct_password(self, db, staff, monkeypatch):
        # Lock check reports unlocked (e.g. store hiccup) but the row still says locked
        monkeypatch.setattr(
            lockout_service,
            "check_lock_status",
            lambda db, username: lockout_service.LockStatus(is_locked=False, remaining_attempts=3),
        )
        staff.is_locked = True
        staff.locked_until = utcnow() + timedelta(minutes=10)
        db.commit()

        result = auth_service.sign_in(db, "staff_user", USER_PASSWORD)
        assert result.success is False
        assert result.error == "Account is locked. Please contact admin or try again later."
        assert _history(db)[-1].failure_reason == "Account locked"
        assert _history(db)[-1].user_id == staff.id

    def test_store_failure_is_reported_not_raised(self, db, staff, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("db down"))

        monkeypatch.setattr(auth_service, "get_user_by_username", broken)
        result = auth_service.sign_in(db, "staff_user", USER_PASSWORD)
        assert result.success is False
        assert result.error == "Authentication service unavailable"
        assert result.failure_reason == LoginFailure.SERVICE_UNAVAILABLE
        assert _history(db) == []


class TestSessionActivity:
    def test_sign_out_and_dashboard_access_are_logged(self, db, staff):
        auth_service.sign_out(db, staff)
        auth_service.record_dashboard_access(db, staff)
        actions = [a.action for a in db.query(ActivityLog).order_by(ActivityLog.created_at)]
        assert actions == ["LOGOUT", "DASHBOARD_ACCESS"]

    def test_touch_activity(self, db, staff):
        assert staff.last_activity is None
        auth_service.touch_activity(db, staff.id)
        db.expire_all()
        assert db.get(User, staff.id).last_activity is not None


class TestAccountAdmin:
    def test_add_user_hashes_and_trims(self, db):
        result = auth_service.add_user(
            db,
            UserCreate(
                username="  new_user ",
                password="password1",
                email=" new@example.com ",
                full_name=" New User ",
                phone="  ",
            ),
        )
        assert result.success
        user = result.data
        assert user.username == "new_user"
        assert user.email == "new@example.com"
        assert user.full_name == "New User"
        assert user.phone is None
        assert user.role == "user"
        assert user.password_hash != "password1"

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"username": "x"}, "Username must be at least 3 characters"),
            ({"password": "123"}, "Password must be at least 6 characters"),
            ({"email": "bad"}, "Please enter a valid email address"),
            ({"full_name": "A"}, "Full name must be at least 2 characters"),
        ],
    )
    def test_add_user_validation(self, db, overrides, message):
        fields = {"username": "valid_name", "password": "password1", "email": "v@example.com", "full_name": "Val Id"}
        fields.update(overrides)
        result = auth_service.add_user(db, UserCreate(**fields))
        assert result.success is False
        assert result.error == message
        assert result.error_kind == ErrorKind.VALIDATION
        assert db.query(User).count() == 0

    def test_duplicate_username(self, db, staff):
        result = auth_service.add_user(
            db,
            UserCreate(username="staff_user", password="password1", email="other@example.com", full_name="Other"),
        )
        assert result.success is False
        assert result.error == "Username or email already exists"
        assert result.error_kind == ErrorKind.CONFLICT

    def test_update_user(self, db, staff):
        result = auth_service.update_user(db, staff.id, UserUpdate(full_name=" Renamed ", role="admin", phone="555"))
        assert result.success
        assert result.data.full_name == "Renamed"
        assert result.data.role == "admin"
        assert result.data.phone == "555"

        bad = auth_service.update_user(db, staff.id, UserUpdate(email="nope"))
        assert bad.error == "Please enter a valid email address"

        missing = auth_service.update_user(db, "missing-id", UserUpdate(full_name="Someone"))
        assert missing.error_kind == ErrorKind.NOT_FOUND

    def test_delete_and_list_users(self, db, admin, staff):
        listed = auth_service.list_users(db)
        assert {u.username for u in listed.data} == {"admin1", "staff_user"}

        assert auth_service.delete_user(db, staff.id).success
        assert auth_service.get_user_by_id(db, staff.id) is None
        assert auth_service.delete_user(db, staff.id).error == "User not found"

    def test_ensure_default_admin_only_when_empty(self, db):
        auth_service.ensure_default_admin(db)
        auth_service.ensure_default_admin(db)
        users = db.query(User).all()
        assert len(users) == 1
        assert users[0].role == "admin"
