from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel
from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.db.connection import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    # Denormalized sum of credit_transactions.amount_cents for this user.
    travel_credit_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def to_schema(self) -> UserProfileRead:
        return UserProfileRead.from_orm_model(self)


class UserProfileRead(BaseModel):
    user_id: str
    display_name: str | None
    travel_credit_cents: int
    created_at: datetime

    @classmethod
    def from_orm_model(cls, db_profile: UserProfile) -> UserProfileRead:
        return cls(
            user_id=db_profile.user_id,
            display_name=db_profile.display_name,
            travel_credit_cents=db_profile.travel_credit_cents,
            created_at=db_profile.created_at,
        )
