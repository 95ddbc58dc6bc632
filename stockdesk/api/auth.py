from fastapi import APIRouter, Cookie, Depends, Header, HTTPException, Request, Response
from sqlalchemy.orm import Session

from stockdesk.config import settings
from stockdesk.database import get_db
from stockdesk.models.user import User
from stockdesk.schemas.user import LoginRequest, UserOut
from stockdesk.services import auth_service
from stockdesk.services.auth_service import LoginFailure

router = APIRouter(prefix="/auth", tags=["Auth"])


def _client_info(request: Request) -> tuple[str | None, str | None]:
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


def get_current_user(
    token: str | None = Cookie(default=None, alias="token"),
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """Dependency: extract user from a Bearer header, falling back to the JWT cookie."""
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    if not token:
        raise HTTPException(401, "Not authenticated")
    payload = auth_service.decode_token(token)
    if not payload:
        raise HTTPException(401, "Invalid or expired token")
    user = auth_service.get_user_by_id(db, payload["sub"])
    if not user:
        raise HTTPException(401, "User not found")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise HTTPException(403, "Admin only")
    return user


@router.post("/login")
def login(data: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    ip, user_agent = _client_info(request)
    result = auth_service.sign_in(db, data.username, data.password, ip_address=ip, user_agent=user_agent)
    if not result.success:
        if result.failure_reason == LoginFailure.SERVICE_UNAVAILABLE:
            status = 503
        elif result.failure_reason is None:
            status = 422
        elif result.failure_reason == LoginFailure.ACCOUNT_LOCKED:
            status = 423
        else:
            status = 401
        raise HTTPException(status, {"message": result.error, "remaining_attempts": result.remaining_attempts})

    user = result.user
    token = auth_service.create_access_token(user.id, user.username, user.role)
    response.set_cookie(
        "token", token, httponly=True, samesite="lax", max_age=3600 * settings.ACCESS_TOKEN_EXPIRE_HOURS
    )
    return {"token": token, "user": user}


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ip, user_agent = _client_info(request)
    auth_service.sign_out(db, user, ip_address=ip, user_agent=user_agent)
    response.delete_cookie("token")
    return {"ok": True}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user


@router.post("/heartbeat")
def heartbeat(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Called by the client's idle timer while the user is active."""
    auth_service.touch_activity(db, user.id)
    return {"ok": True, "session_timeout_seconds": settings.SESSION_TIMEOUT_MINUTES * 60}


@router.post("/dashboard-access")
def dashboard_access(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    auth_service.record_dashboard_access(db, user)
    return {"ok": True}
