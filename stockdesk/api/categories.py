from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockdesk.api.auth import get_current_user, require_admin
from stockdesk.api.results import unwrap
from stockdesk.database import get_db
from stockdesk.models.user import User
from stockdesk.schemas.product import CategoryCreate, CategoryOut
from stockdesk.services import audit_service, category_service

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=list[CategoryOut])
def list_categories(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return unwrap(category_service.list_categories(db))


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(data: CategoryCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    category = unwrap(category_service.add_category(db, data))
    audit_service.log_activity(
        db, admin.id, admin.username, "CREATE_CATEGORY", "CATEGORY", category.id, details={"name": category.name}
    )
    return category
