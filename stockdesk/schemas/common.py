from enum import Enum as PyEnum
from typing import Any

from pydantic import BaseModel

from stockdesk.schemas.user import UserPublic


class ErrorKind(str, PyEnum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PERSISTENCE = "persistence"


class OperationResult(BaseModel):
    """Envelope returned by every service call: data on success, a caller-safe error otherwise."""

    success: bool
    data: Any = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind = ErrorKind.VALIDATION) -> "OperationResult":
        return cls(success=False, error=error, error_kind=kind)


class LoginResult(BaseModel):
    success: bool
    user: UserPublic | None = None
    error: str | None = None
    remaining_attempts: int | None = None
    # One of LoginFailure values; None on success and on validation errors
    failure_reason: str | None = None
