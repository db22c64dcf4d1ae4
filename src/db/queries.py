from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.credit import CreditTransaction, CreditTransactionCreate
from src.models.interest import InterestListEntry, PublicVisibility, TripInterest
from src.models.trip import ProposalStatus, Trip
from src.models.user import UserProfile
from src.models.viability import ProposalStats
from src.models.vote import TripVote


async def create_trip(session: AsyncSession, trip: Trip) -> Trip:
    session.add(trip)
    await session.flush()
    await session.refresh(trip)
    return trip


async def get_trip(session: AsyncSession, trip_id: int, *, for_update: bool = False) -> Trip | None:
    stmt = select(Trip).where(Trip.id == trip_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_trip_by_slug(session: AsyncSession, slug: str) -> Trip | None:
    result = await session.execute(select(Trip).where(Trip.slug == slug))
    return result.scalar_one_or_none()


async def list_trips_by_status(session: AsyncSession, status: ProposalStatus) -> list[Trip]:
    column_value = status.to_column()
    condition = Trip.proposal_status.is_(None) if column_value is None else Trip.proposal_status == column_value
    result = await session.execute(select(Trip).where(condition).order_by(Trip.created_at.desc(), Trip.id.desc()))
    return list(result.scalars().all())


async def list_published_trips(session: AsyncSession) -> list[Trip]:
    result = await session.execute(
        select(Trip).where(Trip.is_published.is_(True)).order_by(Trip.created_at.desc(), Trip.id.desc())
    )
    return list(result.scalars().all())


async def transition_trip_status(
    session: AsyncSession,
    trip_id: int,
    *,
    from_status: ProposalStatus,
    to_status: ProposalStatus,
    **values: object,
) -> int:
    """Move a trip between statuses only if it is still in ``from_status``.

    Returns the affected row count (0 or 1).
    """
    result = await session.execute(
        update(Trip)
        .where(Trip.id == trip_id, Trip.proposal_status == from_status.to_column())
        .values(proposal_status=to_status.to_column(), **values)
    )
    return int(result.rowcount or 0)


async def mark_reward_paid(session: AsyncSession, trip: Trip, *, now: datetime) -> bool:
    """Claim the creator reward for ``trip``. Only the first caller gets True."""
    result = await session.execute(
        update(Trip)
        .where(Trip.id == trip.id, Trip.reward_paid_at.is_(None))
        .values(reward_paid_at=now)
        .execution_options(synchronize_session=False)
    )
    claimed = int(result.rowcount or 0) == 1
    await session.refresh(trip, attribute_names=["reward_paid_at"])
    return claimed


async def create_vote(session: AsyncSession, user_id: str, trip_id: int) -> TripVote:
    vote = TripVote(user_id=user_id, trip_id=trip_id)
    session.add(vote)
    await session.flush()
    await session.refresh(vote)
    return vote


async def get_vote(session: AsyncSession, user_id: str, trip_id: int) -> TripVote | None:
    result = await session.execute(
        select(TripVote).where(TripVote.user_id == user_id, TripVote.trip_id == trip_id).limit(1)
    )
    return result.scalar_one_or_none()


async def delete_votes(session: AsyncSession, user_id: str, trip_id: int) -> int:
    result = await session.execute(
        delete(TripVote).where(TripVote.user_id == user_id, TripVote.trip_id == trip_id)
    )
    return int(result.rowcount or 0)


async def count_votes(session: AsyncSession, trip_id: int) -> int:
    result = await session.execute(select(func.count(TripVote.id)).where(TripVote.trip_id == trip_id))
    return int(result.scalar_one())


async def list_votes_with_trips(session: AsyncSession, user_id: str) -> list[tuple[TripVote, Trip]]:
    result = await session.execute(
        select(TripVote, Trip)
        .join(Trip, TripVote.trip_id == Trip.id)
        .where(TripVote.user_id == user_id)
        .order_by(TripVote.created_at.desc(), TripVote.id.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def create_interest(
    session: AsyncSession,
    user_id: str,
    trip_id: int,
    *,
    public_visibility: PublicVisibility = PublicVisibility.ANONYMOUS,
    note: str | None = None,
) -> TripInterest:
    interest = TripInterest(
        user_id=user_id,
        trip_id=trip_id,
        public_visibility=public_visibility.value,
        note=note,
    )
    session.add(interest)
    await session.flush()
    await session.refresh(interest)
    return interest


async def get_interest(session: AsyncSession, user_id: str, trip_id: int) -> TripInterest | None:
    result = await session.execute(
        select(TripInterest).where(TripInterest.user_id == user_id, TripInterest.trip_id == trip_id).limit(1)
    )
    return result.scalar_one_or_none()


async def set_interest_visibility(
    session: AsyncSession, user_id: str, trip_id: int, public_visibility: PublicVisibility
) -> int:
    result = await session.execute(
        update(TripInterest)
        .where(TripInterest.user_id == user_id, TripInterest.trip_id == trip_id)
        .values(public_visibility=public_visibility.value)
    )
    return int(result.rowcount or 0)


async def delete_interests(session: AsyncSession, user_id: str, trip_id: int) -> int:
    result = await session.execute(
        delete(TripInterest).where(TripInterest.user_id == user_id, TripInterest.trip_id == trip_id)
    )
    return int(result.rowcount or 0)


async def count_interests(session: AsyncSession, trip_id: int) -> int:
    result = await session.execute(
        select(func.count(TripInterest.id)).where(TripInterest.trip_id == trip_id)
    )
    return int(result.scalar_one())


async def list_interest_entries(session: AsyncSession, trip_id: int) -> list[InterestListEntry]:
    result = await session.execute(
        select(
            TripInterest.user_id,
            TripInterest.public_visibility,
            TripInterest.note,
            TripInterest.created_at,
        )
        .where(TripInterest.trip_id == trip_id)
        .order_by(TripInterest.created_at.desc(), TripInterest.id.desc())
    )
    return [
        InterestListEntry(
            user_id=row.user_id,
            public_visibility=row.public_visibility,
            note=row.note,
            created_at=row.created_at,
        )
        for row in result.all()
    ]


async def list_interests_with_trips(session: AsyncSession, user_id: str) -> list[tuple[TripInterest, Trip]]:
    result = await session.execute(
        select(TripInterest, Trip)
        .join(Trip, TripInterest.trip_id == Trip.id)
        .where(TripInterest.user_id == user_id)
        .order_by(TripInterest.created_at.desc(), TripInterest.id.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def get_proposal_stats(session: AsyncSession, trip_id: int) -> ProposalStats:
    votes = await count_votes(session, trip_id)
    interested = await count_interests(session, trip_id)
    return ProposalStats(votes=votes, interested=interested)


async def get_profile(session: AsyncSession, user_id: str, *, for_update: bool = False) -> UserProfile | None:
    stmt = select(UserProfile).where(UserProfile.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_or_create_profile(session: AsyncSession, user_id: str, *, for_update: bool = False) -> UserProfile:
    profile = await get_profile(session, user_id, for_update=for_update)
    if profile is None:
        profile = UserProfile(user_id=user_id, travel_credit_cents=0)
        session.add(profile)
        await session.flush()
        await session.refresh(profile)
    return profile


async def get_display_names(session: AsyncSession, user_ids: list[str]) -> dict[str, str]:
    if not user_ids:
        return {}
    result = await session.execute(
        select(UserProfile.user_id, UserProfile.display_name).where(UserProfile.user_id.in_(user_ids))
    )
    return {row.user_id: row.display_name for row in result.all() if row.display_name}


async def create_credit_transaction(
    session: AsyncSession, data: CreditTransactionCreate
) -> CreditTransaction:
    transaction = CreditTransaction(
        user_id=data.user_id,
        amount_cents=data.amount_cents,
        type=data.type.value,
        reference_type=data.reference_type.value if data.reference_type else None,
        reference_id=data.reference_id,
        description=data.description,
    )
    session.add(transaction)
    await session.flush()
    await session.refresh(transaction)
    return transaction


async def list_credit_transactions(session: AsyncSession, user_id: str) -> list[CreditTransaction]:
    result = await session.execute(
        select(CreditTransaction)
        .where(CreditTransaction.user_id == user_id)
        .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
    )
    return list(result.scalars().all())


async def sum_credit_transactions(session: AsyncSession, user_id: str) -> int:
    result = await session.execute(
        select(func.coalesce(func.sum(CreditTransaction.amount_cents), 0)).where(
            CreditTransaction.user_id == user_id
        )
    )
    return int(result.scalar_one())


async def count_credit_transactions(
    session: AsyncSession, user_id: str, *, type_: str, reference_id: int | None = None
) -> int:
    stmt = select(func.count(CreditTransaction.id)).where(
        CreditTransaction.user_id == user_id, CreditTransaction.type == type_
    )
    if reference_id is not None:
        stmt = stmt.where(CreditTransaction.reference_id == reference_id)
    result = await session.execute(stmt)
    return int(result.scalar_one())
