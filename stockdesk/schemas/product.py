from datetime import datetime

from pydantic import BaseModel

from stockdesk.models.stock_movement import MovementType


# --- Category schemas ---

class CategoryCreate(BaseModel):
    name: str
    description: str | None = None
    color: str = "#3B82F6"
    icon: str = "package"


class CategoryOut(BaseModel):
    id: str
    name: str
    description: str | None = None
    color: str
    icon: str
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Product schemas ---

class ProductCreate(BaseModel):
    name: str
    unit_price: int
    quantity: int = 0
    category_id: str | None = None


class ProductUpdate(BaseModel):
    name: str | None = None
    unit_price: int | None = None
    quantity: int | None = None
    category_id: str | None = None


class ProductOut(BaseModel):
    id: str
    name: str
    unit_price: int
    quantity: int
    category_id: str | None = None
    category: CategoryOut | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# --- Stock ledger ---

class StockMovementOut(BaseModel):
    id: str
    product_id: str
    user_id: str | None = None
    movement_type: MovementType
    quantity_change: int
    quantity_before: int
    quantity_after: int
    reason: str | None = None
    reference_number: str
    notes: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
