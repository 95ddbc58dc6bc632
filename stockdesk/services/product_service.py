import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, lazyload

from stockdesk.config import settings
from stockdesk.models.product import Product
from stockdesk.models.stock_movement import MovementType
from stockdesk.schemas.common import ErrorKind, OperationResult
from stockdesk.schemas.product import ProductCreate, ProductUpdate
from stockdesk.services import stock_service
from stockdesk.services.validation import (
    first_error,
    validate_price,
    validate_product_name,
    validate_quantity,
)

logger = logging.getLogger(__name__)

_FIELD_VALIDATORS = {
    "name": validate_product_name,
    "unit_price": validate_price,
    "quantity": validate_quantity,
}


def list_products(db: Session) -> OperationResult:
    try:
        products = db.query(Product).order_by(Product.created_at.desc()).all()
    except SQLAlchemyError:
        logger.exception("Get products error")
        return OperationResult.fail("Failed to load products", ErrorKind.PERSISTENCE)
    return OperationResult.ok(products)


def get_product(db: Session, product_id: str) -> Product | None:
    return db.query(Product).filter(Product.id == product_id).first()


def create_product(db: Session, data: ProductCreate, actor_id: str | None = None) -> OperationResult:
    """Insert a product; opening stock is booked as an IN movement when an actor is known."""
    error = first_error(
        validate_product_name(data.name),
        validate_price(data.unit_price),
        validate_quantity(data.quantity),
    )
    if error:
        return OperationResult.fail(error)

    try:
        product = Product(
            name=data.name.strip(),
            unit_price=data.unit_price,
            quantity=data.quantity,
            category_id=data.category_id or None,
        )
        db.add(product)
        db.flush()

        if actor_id and product.quantity > 0:
            stock_service.record_movement(
                db,
                product.id,
                actor_id,
                MovementType.IN,
                product.quantity,
                0,
                product.quantity,
                reason="Initial stock",
                notes=f"Product created with initial stock of {product.quantity} units",
            )

        db.commit()
        db.refresh(product)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Add product error")
        return OperationResult.fail("Failed to add product", ErrorKind.PERSISTENCE)
    return OperationResult.ok(product)


def update_product(db: Session, product_id: str, data: ProductUpdate, actor_id: str | None = None) -> OperationResult:
    """
    Apply a partial update. A quantity change made by a known actor is booked as an
    IN or OUT movement; unchanged quantities book nothing.
    """
    update_data = data.model_dump(exclude_unset=True)
    error = first_error(*(check(update_data[field]) for field, check in _FIELD_VALIDATORS.items() if field in update_data))
    if error:
        return OperationResult.fail(error)
    if "name" in update_data:
        update_data["name"] = update_data["name"].strip()
    if "category_id" in update_data:
        update_data["category_id"] = update_data["category_id"] or None

    try:
        product = (
            db.query(Product)
            .options(lazyload(Product.category))
            .filter(Product.id == product_id)
            .with_for_update()
            .first()
        )
        if not product:
            return OperationResult.fail("Product not found", ErrorKind.NOT_FOUND)

        quantity_before = product.quantity
        for field, value in update_data.items():
            setattr(product, field, value)
        db.flush()
        quantity_after = product.quantity

        if actor_id and quantity_after != quantity_before:
            change = quantity_after - quantity_before
            stock_service.record_movement(
                db,
                product.id,
                actor_id,
                stock_service.movement_type_for(change),
                change,
                quantity_before,
                quantity_after,
                reason="Product update",
                notes=f"Stock updated from {quantity_before} to {quantity_after} units",
            )

        db.commit()
        db.refresh(product)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Update product error")
        return OperationResult.fail("Failed to update product", ErrorKind.PERSISTENCE)
    return OperationResult.ok(product)


def delete_product(db: Session, product_id: str) -> OperationResult:
    try:
        product = get_product(db, product_id)
        if not product:
            return OperationResult.fail("Product not found", ErrorKind.NOT_FOUND)
        db.delete(product)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Delete product error")
        return OperationResult.fail("Failed to delete product", ErrorKind.PERSISTENCE)
    return OperationResult.ok()


def is_low_stock(quantity: int, threshold: int | None = None) -> bool:
    if threshold is None:
        threshold = settings.LOW_STOCK_THRESHOLD
    return quantity < threshold


def get_low_stock(db: Session, threshold: int | None = None) -> list[Product]:
    if threshold is None:
        threshold = settings.LOW_STOCK_THRESHOLD
    return (
        db.query(Product)
        .filter(Product.quantity < threshold)
        .order_by(Product.quantity.asc())
        .all()
    )
