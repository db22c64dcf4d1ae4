from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.connection import Base

if TYPE_CHECKING:
    from src.models.trip import Trip


class PublicVisibility(StrEnum):
    ANONYMOUS = "anonymous"
    NAMED = "named"


class InterestLevel(StrEnum):
    INTERESTED = "interested"
    VERY_INTERESTED = "very_interested"
    CONFIRMED = "confirmed"


class TripInterest(Base):
    """A member's interest in joining a trip (the club's "favorite")."""

    __tablename__ = "trip_favorites"
    __table_args__ = (UniqueConstraint("user_id", "trip_id", name="uq_trip_favorites_user_trip"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    trip_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    interest_level: Mapped[str] = mapped_column(
        String(20), default=InterestLevel.INTERESTED.value, nullable=False
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    public_visibility: Mapped[str] = mapped_column(
        String(20), default=PublicVisibility.ANONYMOUS.value, nullable=False
    )

    trip: Mapped[Trip] = relationship(back_populates="interests")

    def to_schema(self) -> InterestRead:
        return InterestRead.from_orm_model(self)


class InterestCreate(BaseModel):
    public_visibility: PublicVisibility | None = None
    note: str | None = Field(default=None, max_length=500)


class InterestRead(BaseModel):
    id: int
    user_id: str
    trip_id: int
    interest_level: str
    public_visibility: str
    note: str | None
    created_at: datetime

    @classmethod
    def from_orm_model(cls, db_interest: TripInterest) -> InterestRead:
        return cls(
            id=db_interest.id,
            user_id=db_interest.user_id,
            trip_id=db_interest.trip_id,
            interest_level=db_interest.interest_level,
            public_visibility=db_interest.public_visibility,
            note=db_interest.note,
            created_at=db_interest.created_at,
        )


class InterestListEntry(BaseModel):
    user_id: str
    public_visibility: str
    note: str | None
    created_at: datetime
