from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field
from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.connection import Base, JSONColumn

if TYPE_CHECKING:
    from src.models.interest import TripInterest
    from src.models.vote import TripVote


class ProposalStatus(StrEnum):
    """Lifecycle state of a trip. ``NOT_A_PROPOSAL`` is persisted as NULL."""

    NOT_A_PROPOSAL = "not_a_proposal"
    PENDING_REVIEW = "pending_review"
    VOTING = "voting"
    READY_TO_SCHEDULE = "ready_to_schedule"
    SCHEDULED = "scheduled"
    ARCHIVED = "archived"

    @classmethod
    def from_column(cls, value: str | None) -> ProposalStatus:
        if value is None:
            return cls.NOT_A_PROPOSAL
        return cls(value)

    def to_column(self) -> str | None:
        if self is ProposalStatus.NOT_A_PROPOSAL:
            return None
        return self.value


PARTICIPATION_STATUSES = frozenset({ProposalStatus.VOTING, ProposalStatus.READY_TO_SCHEDULE})


class SourceType(StrEnum):
    NTG = "ntg"
    MEMBER = "member"


class ViabilityRule(BaseModel):
    min_interested: int = Field(ge=0)
    min_votes: int | None = Field(default=None, ge=0)


class Trip(Base):
    __tablename__ = "trips"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    short_description: Mapped[str] = mapped_column(Text, nullable=False)
    long_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[str | None] = mapped_column(String(50), nullable=True)
    duration: Mapped[str | None] = mapped_column(String(50), nullable=True)
    destination: Mapped[str] = mapped_column(Text, nullable=False)
    hero_image: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    tags: Mapped[list[str] | None] = mapped_column(JSONColumn, nullable=True, default=list)

    source_type: Mapped[str] = mapped_column(String(20), default=SourceType.NTG.value, nullable=False)
    created_by_user_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    proposal_status: Mapped[str | None] = mapped_column(String(30), nullable=True, index=True)
    viability_rule: Mapped[dict[str, Any] | None] = mapped_column(JSONColumn, nullable=True)

    price_essential_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    price_essential_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    price_complete_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    price_complete_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    destinations: Mapped[list[str] | None] = mapped_column(JSONColumn, nullable=True)
    difficulty: Mapped[str | None] = mapped_column(String(20), nullable=True)
    start_city: Mapped[str | None] = mapped_column(String(100), nullable=True, default="Coimbra")
    includes: Mapped[list[str] | None] = mapped_column(JSONColumn, nullable=True)
    excludes: Mapped[list[str] | None] = mapped_column(JSONColumn, nullable=True)
    optional_addons: Mapped[list[str] | None] = mapped_column(JSONColumn, nullable=True)
    itinerary_essential: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONColumn, nullable=True)
    itinerary_complete: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONColumn, nullable=True)
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True, default=10)
    duration_hours_est: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cover_image_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)

    status_changed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    creator_reward_cents: Mapped[int] = mapped_column(Integer, default=2000, nullable=False)
    reward_paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    votes: Mapped[list[TripVote]] = relationship(
        back_populates="trip", cascade="all, delete-orphan", passive_deletes=True
    )
    interests: Mapped[list[TripInterest]] = relationship(
        back_populates="trip", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def status(self) -> ProposalStatus:
        return ProposalStatus.from_column(self.proposal_status)

    @property
    def reward_eligible(self) -> bool:
        return self.source_type == SourceType.MEMBER.value and bool(self.created_by_user_id)

    @property
    def accepts_participation(self) -> bool:
        """Votes and interest are taken only on published proposals still open to members."""
        return bool(self.is_published) and self.status in PARTICIPATION_STATUSES

    def to_schema(self) -> TripRead:
        return TripRead.from_orm_model(self)


class TripCreate(BaseModel):
    """Admin seed payload. Member proposals go through ``ProposalDraft`` instead."""

    title: str = Field(min_length=1)
    slug: str | None = Field(default=None, max_length=100)
    short_description: str
    long_description: str | None = None
    destination: str
    destinations: list[str] | None = None
    duration: str | None = None
    duration_hours_est: int | None = None
    difficulty: str | None = None
    price: str | None = None
    hero_image: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_featured: bool = False
    start_city: str | None = None
    capacity: int | None = None
    includes: list[str] | None = None
    excludes: list[str] | None = None
    viability_rule: ViabilityRule | None = None
    creator_reward_cents: int | None = Field(default=None, ge=0)
    proposal_status: ProposalStatus = ProposalStatus.PENDING_REVIEW


class TripRead(BaseModel):
    id: int
    slug: str
    title: str
    short_description: str
    long_description: str | None
    destination: str
    destinations: list[str] | None
    duration: str | None
    duration_hours_est: int | None
    difficulty: str | None
    hero_image: str | None
    tags: list[str] | None
    is_published: bool
    is_featured: bool
    source_type: str
    created_by_user_id: str | None
    proposal_status: str | None
    viability_rule: dict[str, Any] | None
    price_essential_min: int | None
    price_essential_max: int | None
    price_complete_min: int | None
    price_complete_max: int | None
    start_city: str | None
    includes: list[str] | None
    excludes: list[str] | None
    optional_addons: list[str] | None
    itinerary_essential: list[dict[str, Any]] | None
    itinerary_complete: list[dict[str, Any]] | None
    capacity: int | None
    cover_image_prompt: str | None
    creator_reward_cents: int
    reward_paid_at: datetime | None
    status_changed_at: datetime | None
    reviewed_at: datetime | None
    scheduled_at: datetime | None
    admin_notes: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_orm_model(cls, db_trip: Trip) -> TripRead:
        return cls(
            id=db_trip.id,
            slug=db_trip.slug,
            title=db_trip.title,
            short_description=db_trip.short_description,
            long_description=db_trip.long_description,
            destination=db_trip.destination,
            destinations=db_trip.destinations,
            duration=db_trip.duration,
            duration_hours_est=db_trip.duration_hours_est,
            difficulty=db_trip.difficulty,
            hero_image=db_trip.hero_image,
            tags=db_trip.tags,
            is_published=db_trip.is_published,
            is_featured=db_trip.is_featured,
            source_type=db_trip.source_type,
            created_by_user_id=db_trip.created_by_user_id,
            proposal_status=db_trip.proposal_status,
            viability_rule=db_trip.viability_rule,
            price_essential_min=db_trip.price_essential_min,
            price_essential_max=db_trip.price_essential_max,
            price_complete_min=db_trip.price_complete_min,
            price_complete_max=db_trip.price_complete_max,
            start_city=db_trip.start_city,
            includes=db_trip.includes,
            excludes=db_trip.excludes,
            optional_addons=db_trip.optional_addons,
            itinerary_essential=db_trip.itinerary_essential,
            itinerary_complete=db_trip.itinerary_complete,
            capacity=db_trip.capacity,
            cover_image_prompt=db_trip.cover_image_prompt,
            creator_reward_cents=db_trip.creator_reward_cents,
            reward_paid_at=db_trip.reward_paid_at,
            status_changed_at=db_trip.status_changed_at,
            reviewed_at=db_trip.reviewed_at,
            scheduled_at=db_trip.scheduled_at,
            admin_notes=db_trip.admin_notes,
            created_at=db_trip.created_at,
            updated_at=db_trip.updated_at,
        )


class TripTeaser(BaseModel):
    """Subset of a proposal shown to visitors without an identity."""

    id: int
    slug: str
    title: str
    short_description: str
    hero_image: str | None
    destination: str
    duration: str | None
    difficulty: str | None
    tags: list[str] | None
    price_essential_min: int | None
    price_essential_max: int | None
    proposal_status: str | None
    is_featured: bool
    stops_count: int = 0

    @classmethod
    def from_orm_model(cls, db_trip: Trip) -> TripTeaser:
        return cls(
            id=db_trip.id,
            slug=db_trip.slug,
            title=db_trip.title,
            short_description=db_trip.short_description,
            hero_image=db_trip.hero_image,
            destination=db_trip.destination,
            duration=db_trip.duration,
            difficulty=db_trip.difficulty,
            tags=db_trip.tags,
            price_essential_min=db_trip.price_essential_min,
            price_essential_max=db_trip.price_essential_max,
            proposal_status=db_trip.proposal_status,
            is_featured=db_trip.is_featured,
            stops_count=len(db_trip.destinations or []),
        )
