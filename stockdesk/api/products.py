from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from stockdesk.api.auth import get_current_user, require_admin
from stockdesk.api.results import unwrap
from stockdesk.config import settings
from stockdesk.database import get_db
from stockdesk.models.user import User
from stockdesk.schemas.product import ProductCreate, ProductOut, ProductUpdate
from stockdesk.services import audit_service, product_service

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("", response_model=list[ProductOut])
def list_products(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return unwrap(product_service.list_products(db))


@router.get("/low-stock", response_model=list[ProductOut])
def low_stock(
    threshold: int = Query(default=settings.LOW_STOCK_THRESHOLD, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return product_service.get_low_stock(db, threshold)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    product = product_service.get_product(db, product_id)
    if not product:
        raise HTTPException(404, "Product not found")
    return product


@router.post("", response_model=ProductOut, status_code=201)
def create_product(data: ProductCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    product = unwrap(product_service.create_product(db, data, actor_id=admin.id))
    audit_service.log_activity(
        db, admin.id, admin.username, "CREATE_PRODUCT", "PRODUCT", product.id,
        details={"name": product.name, "quantity": product.quantity},
    )
    return product


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: str,
    data: ProductUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    product = unwrap(product_service.update_product(db, product_id, data, actor_id=admin.id))
    audit_service.log_activity(
        db, admin.id, admin.username, "UPDATE_PRODUCT", "PRODUCT", product.id,
        details=data.model_dump(exclude_unset=True),
    )
    return product


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    unwrap(product_service.delete_product(db, product_id))
    audit_service.log_activity(db, admin.id, admin.username, "DELETE_PRODUCT", "PRODUCT", product_id)
