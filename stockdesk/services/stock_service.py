"""
Stock movement ledger.

Movements are append-only. They are written inside a SAVEPOINT of the caller's
transaction so the product change and its ledger row commit together, while a
failed ledger insert only rolls back itself.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockdesk.models.stock_movement import MovementType, StockMovement
from stockdesk.schemas.common import ErrorKind, OperationResult
from stockdesk.time_utils import epoch_millis

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


def movement_type_for(quantity_change: int) -> MovementType:
    if quantity_change > 0:
        return MovementType.IN
    if quantity_change < 0:
        return MovementType.OUT
    return MovementType.ADJUSTMENT


def make_reference_number(movement_type: MovementType, product_id: str, now: datetime | None = None) -> str:
    """``{TYPE}-{product id}-{epoch ms}``; two writes in the same millisecond collide."""
    return f"{movement_type.value}-{product_id}-{epoch_millis(now)}"


def record_movement(
    db: Session,
    product_id: str,
    user_id: str | None,
    movement_type: MovementType,
    quantity_change: int,
    quantity_before: int,
    quantity_after: int,
    reason: str | None = None,
    notes: str | None = None,
) -> StockMovement | None:
    """Add a ledger row to the current transaction. Returns None if the insert failed."""
    if quantity_before + quantity_change != quantity_after:
        raise ValueError(
            f"Inconsistent movement: {quantity_before} + {quantity_change} != {quantity_after}"
        )

    try:
        with db.begin_nested():
            movement = StockMovement(
                product_id=product_id,
                user_id=user_id,
                movement_type=movement_type,
                quantity_change=quantity_change,
                quantity_before=quantity_before,
                quantity_after=quantity_after,
                reason=reason or f"Stock {movement_type.value.lower()}",
                reference_number=make_reference_number(movement_type, product_id),
                notes=notes,
            )
            db.add(movement)
    except SQLAlchemyError:
        logger.exception("Log stock movement error for product %s", product_id)
        return None

    logger.info(
        "Stock %s for product %s: %d -> %d", movement_type.value, product_id, quantity_before, quantity_after
    )
    return movement


def list_movements(db: Session, product_id: str | None = None, limit: int = DEFAULT_LIMIT) -> OperationResult:
    try:
        q = db.query(StockMovement)
        if product_id:
            q = q.filter(StockMovement.product_id == product_id)
        movements = q.order_by(StockMovement.created_at.desc()).limit(limit).all()
    except SQLAlchemyError:
        logger.exception("Get stock movements error")
        return OperationResult.fail("Failed to load stock movements", ErrorKind.PERSISTENCE)
    return OperationResult.ok(movements)
