from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel
from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.db.connection import Base


class CreditTransactionType(StrEnum):
    CREATOR_REWARD = "creator_reward"
    BOOKING_USED = "booking_used"
    ADMIN_ADJUSTMENT = "admin_adjustment"
    EXPIRED = "expired"


class CreditReferenceType(StrEnum):
    TRIP = "trip"
    BOOKING = "booking"
    ADMIN = "admin"


class CreditTransaction(Base):
    """Append-only credit movement. Positive amounts add credit, negative ones spend it."""

    __tablename__ = "credit_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    reference_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    reference_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def to_schema(self) -> CreditTransactionRead:
        return CreditTransactionRead.from_orm_model(self)


class CreditTransactionCreate(BaseModel):
    user_id: str
    amount_cents: int
    type: CreditTransactionType
    reference_type: CreditReferenceType | None = None
    reference_id: int | None = None
    description: str | None = None


class CreditTransactionRead(BaseModel):
    id: int
    user_id: str
    amount_cents: int
    type: str
    reference_type: str | None
    reference_id: int | None
    description: str | None
    created_at: datetime

    @classmethod
    def from_orm_model(cls, db_tx: CreditTransaction) -> CreditTransactionRead:
        return cls(
            id=db_tx.id,
            user_id=db_tx.user_id,
            amount_cents=db_tx.amount_cents,
            type=db_tx.type,
            reference_type=db_tx.reference_type,
            reference_id=db_tx.reference_id,
            description=db_tx.description,
            created_at=db_tx.created_at,
        )
