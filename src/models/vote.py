from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel
from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.connection import Base

if TYPE_CHECKING:
    from src.models.trip import Trip


class TripVote(Base):
    __tablename__ = "trip_votes"
    __table_args__ = (UniqueConstraint("user_id", "trip_id", name="uq_trip_votes_user_trip"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    trip_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    trip: Mapped[Trip] = relationship(back_populates="votes")

    def to_schema(self) -> VoteRead:
        return VoteRead.from_orm_model(self)


class VoteRead(BaseModel):
    id: int
    user_id: str
    trip_id: int
    created_at: datetime

    @classmethod
    def from_orm_model(cls, db_vote: TripVote) -> VoteRead:
        return cls(
            id=db_vote.id,
            user_id=db_vote.user_id,
            trip_id=db_vote.trip_id,
            created_at=db_vote.created_at,
        )
