from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from stockdesk.api.auth import require_admin
from stockdesk.api.results import unwrap
from stockdesk.database import get_db
from stockdesk.models.user import User
from stockdesk.schemas.user import UserCreate, UserOut, UserUpdate
from stockdesk.services import audit_service, auth_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=list[UserOut])
def list_users(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return unwrap(auth_service.list_users(db))


@router.post("", response_model=UserOut, status_code=201)
def create_user(data: UserCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    created = unwrap(auth_service.add_user(db, data))
    audit_service.log_activity(
        db, admin.id, admin.username, "CREATE_USER", "USER", created.id, details={"username": created.username}
    )
    return created


@router.patch("/{user_id}", response_model=UserOut)
def update_user(user_id: str, data: UserUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    updated = unwrap(auth_service.update_user(db, user_id, data))
    audit_service.log_activity(
        db, admin.id, admin.username, "UPDATE_USER", "USER", updated.id,
        details=data.model_dump(exclude_unset=True),
    )
    return updated


@router.delete("/{user_id}", status_code=204)
def delete_user(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    if user_id == admin.id:
        raise HTTPException(400, "Cannot delete yourself")
    unwrap(auth_service.delete_user(db, user_id))
    audit_service.log_activity(db, admin.id, admin.username, "DELETE_USER", "USER", user_id)
