from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.queries import (
    count_interests,
    create_interest,
    delete_interests,
    get_interest,
    get_trip,
    list_interest_entries,
    list_interests_with_trips,
    set_interest_visibility,
)
from src.models.interest import InterestListEntry, PublicVisibility, TripInterest
from src.models.trip import Trip

logger = logging.getLogger(__name__)


async def has_interest(*, session: AsyncSession, user_id: str, trip_id: int) -> bool:
    return await get_interest(session, user_id, trip_id) is not None


async def get_interest_count(*, session: AsyncSession, trip_id: int) -> int:
    return await count_interests(session, trip_id)


async def update_visibility(
    *,
    session: AsyncSession,
    user_id: str,
    trip_id: int,
    public_visibility: PublicVisibility,
) -> bool:
    updated = await set_interest_visibility(session, user_id, trip_id, public_visibility)
    await session.commit()
    return updated > 0


async def add_interest(
    *,
    session: AsyncSession,
    user_id: str,
    trip_id: int,
    public_visibility: PublicVisibility | None = None,
    note: str | None = None,
) -> tuple[TripInterest | None, str]:
    """Register interest once per (user, trip).

    An existing registration is not duplicated: the visibility is updated when
    one was supplied and the status is ``updated``.
    Closed, unpublished or non-proposal trips return ``not_open``.
    """
    trip = await get_trip(session, trip_id)
    if trip is None:
        return None, "not_found"
    if not trip.accepts_participation:
        logger.info(
            "Interest refused for trip %s in status %s",
            trip_id,
            trip.status.value,
            extra={
                "event_type": "interest.not_open",
                "ops_payload": {"trip_id": trip_id, "status": trip.status.value},
            },
        )
        return None, "not_open"

    existing = await get_interest(session, user_id, trip_id)
    if existing is not None:
        if public_visibility is not None:
            await update_visibility(
                session=session,
                user_id=user_id,
                trip_id=trip_id,
                public_visibility=public_visibility,
            )
        return existing, "updated"

    try:
        interest = await create_interest(
            session,
            user_id,
            trip_id,
            public_visibility=public_visibility or PublicVisibility.ANONYMOUS,
            note=note,
        )
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.warning(
            "Duplicate interest rejected by constraint for trip %s",
            trip_id,
            extra={"event_type": "interest.duplicate", "ops_payload": {"trip_id": trip_id}},
        )
        return None, "already_interested"

    logger.info(
        "Interest recorded for trip %s",
        trip_id,
        extra={"event_type": "interest.recorded", "ops_payload": {"trip_id": trip_id}},
    )
    return interest, "recorded"


async def remove_interest(*, session: AsyncSession, user_id: str, trip_id: int) -> int:
    removed = await delete_interests(session, user_id, trip_id)
    await session.commit()
    return removed


async def list_interest(*, session: AsyncSession, trip_id: int) -> list[InterestListEntry]:
    """Newest first. Callers must hide ``user_id`` unless visibility is ``named``."""
    return await list_interest_entries(session, trip_id)


async def list_user_interests(*, session: AsyncSession, user_id: str) -> list[tuple[TripInterest, Trip]]:
    return await list_interests_with_trips(session, user_id)
