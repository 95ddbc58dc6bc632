import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stockdesk.database import Base
from stockdesk.time_utils import utcnow


class MovementType(str, PyEnum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


class StockMovement(Base):
    """Append-only ledger of product quantity changes."""

    __tablename__ = "stock_movements"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # Plain columns, not foreign keys: ledger rows outlive deleted products and accounts
    product_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    movement_type: Mapped[MovementType] = mapped_column(
        Enum(MovementType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    quantity_change: Mapped[int] = mapped_column(Integer, nullable=False)  # positive=in, negative=out
    quantity_before: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_after: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)
    reference_number: Mapped[str] = mapped_column(String, index=True, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
