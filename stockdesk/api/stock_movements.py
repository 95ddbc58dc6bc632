from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockdesk.api.auth import require_admin
from stockdesk.api.results import unwrap
from stockdesk.database import get_db
from stockdesk.models.user import User
from stockdesk.schemas.product import StockMovementOut
from stockdesk.services import stock_service

router = APIRouter(prefix="/stock-movements", tags=["Stock movements"])


@router.get("", response_model=list[StockMovementOut])
def list_movements(
    product_id: str | None = None,
    limit: int = Query(default=stock_service.DEFAULT_LIMIT, ge=1, le=1000),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return unwrap(stock_service.list_movements(db, product_id=product_id, limit=limit))
