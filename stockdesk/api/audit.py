from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockdesk.api.auth import require_admin
from stockdesk.api.results import unwrap
from stockdesk.database import get_db
from stockdesk.models.user import User
from stockdesk.schemas.user import ActivityLogOut, LoginHistoryOut
from stockdesk.services import audit_service

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get("/activity", response_model=list[ActivityLogOut])
def activity_logs(
    user_id: str | None = None,
    limit: int = Query(default=audit_service.DEFAULT_LIMIT, ge=1, le=1000),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return unwrap(audit_service.get_activity_logs(db, user_id=user_id, limit=limit))


@router.get("/login-history", response_model=list[LoginHistoryOut])
def login_history(
    user_id: str | None = None,
    limit: int = Query(default=audit_service.DEFAULT_LIMIT, ge=1, le=1000),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return unwrap(audit_service.get_login_history(db, user_id=user_id, limit=limit))
