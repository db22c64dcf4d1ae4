from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.queries import (
    count_votes,
    create_vote,
    delete_votes,
    get_trip,
    get_vote,
    list_votes_with_trips,
)
from src.models.trip import Trip
from src.models.vote import TripVote

logger = logging.getLogger(__name__)


async def has_voted(*, session: AsyncSession, user_id: str, trip_id: int) -> bool:
    return await get_vote(session, user_id, trip_id) is not None


async def get_vote_count(*, session: AsyncSession, trip_id: int) -> int:
    return await count_votes(session, trip_id)


async def add_vote(
    *,
    session: AsyncSession,
    user_id: str,
    trip_id: int,
) -> tuple[TripVote | None, str]:
    trip = await get_trip(session, trip_id)
    if trip is None:
        return None, "not_found"
    if not trip.accepts_participation:
        logger.info(
            "Vote refused for trip %s in status %s",
            trip_id,
            trip.status.value,
            extra={
                "event_type": "votes.not_open",
                "ops_payload": {"trip_id": trip_id, "status": trip.status.value},
            },
        )
        return None, "not_open"
    if await has_voted(session=session, user_id=user_id, trip_id=trip_id):
        return None, "already_voted"

    try:
        vote = await create_vote(session, user_id, trip_id)
        await session.commit()
    except IntegrityError:
        # A concurrent request inserted the same (user, trip) pair first.
        await session.rollback()
        logger.warning(
            "Duplicate vote rejected by constraint for trip %s",
            trip_id,
            extra={"event_type": "votes.duplicate", "ops_payload": {"trip_id": trip_id}},
        )
        return None, "already_voted"

    logger.info(
        "Vote recorded for trip %s",
        trip_id,
        extra={"event_type": "votes.recorded", "ops_payload": {"trip_id": trip_id}},
    )
    return vote, "recorded"


async def remove_vote(*, session: AsyncSession, user_id: str, trip_id: int) -> int:
    removed = await delete_votes(session, user_id, trip_id)
    await session.commit()
    return removed


async def list_user_votes(*, session: AsyncSession, user_id: str) -> list[tuple[TripVote, Trip]]:
    return await list_votes_with_trips(session, user_id)
