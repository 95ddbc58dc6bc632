from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

Role = Literal["user", "admin"]


class LoginRequest(BaseModel):
    username: str
    password: str


class UserPublic(BaseModel):
    """Session view of an account: no password hash, no attempt counter."""

    id: str
    username: str
    email: str | None = None
    full_name: str | None = None
    phone: str | None = None
    role: Role
    is_locked: bool = False

    model_config = {"from_attributes": True}


class UserOut(UserPublic):
    last_login: datetime | None = None
    last_activity: datetime | None = None
    created_at: datetime | None = None


class UserCreate(BaseModel):
    username: str
    password: str
    email: str
    full_name: str
    phone: str | None = None
    role: Role = "user"


class UserUpdate(BaseModel):
    email: str | None = None
    full_name: str | None = None
    phone: str | None = None
    role: Role | None = None


class ActivityLogOut(BaseModel):
    id: str
    user_id: str
    username: str
    action: str
    resource_type: str | None = None
    resource_id: str | None = None
    details: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class LoginHistoryOut(BaseModel):
    id: str
    user_id: str | None = None
    username: str
    success: bool
    failure_reason: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
