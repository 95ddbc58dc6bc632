import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stockdesk.models.product import Category
from stockdesk.schemas.common import ErrorKind, OperationResult
from stockdesk.schemas.product import CategoryCreate
from stockdesk.services.validation import validate_category_name

logger = logging.getLogger(__name__)


def list_categories(db: Session) -> OperationResult:
    try:
        categories = db.query(Category).order_by(Category.name.asc()).all()
    except SQLAlchemyError:
        logger.exception("Get categories error")
        return OperationResult.fail("Failed to load categories", ErrorKind.PERSISTENCE)
    return OperationResult.ok(categories)


def add_category(db: Session, data: CategoryCreate) -> OperationResult:
    error = validate_category_name(data.name)
    if error:
        return OperationResult.fail(error)

    category = Category(
        name=data.name.strip(),
        description=(data.description or "").strip() or None,
        color=data.color,
        icon=data.icon,
    )
    try:
        db.add(category)
        db.commit()
        db.refresh(category)
    except IntegrityError:
        db.rollback()
        return OperationResult.fail("Category name already exists", ErrorKind.CONFLICT)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Add category error")
        return OperationResult.fail("Failed to add category", ErrorKind.PERSISTENCE)
    return OperationResult.ok(category)
