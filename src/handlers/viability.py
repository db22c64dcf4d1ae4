"""Viability evaluation for club proposals.

``evaluate`` only reads. Promotion from ``voting`` to ``ready_to_schedule`` is
the separate ``promote_if_viable`` command; stats endpoints call both through
``evaluate_and_promote`` and the scheduler sweeps every proposal in voting.
Promotion is forward only: a proposal that later drops below its thresholds
keeps its status.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, get_settings
from src.db.queries import get_proposal_stats, get_trip, list_trips_by_status, transition_trip_status
from src.models.trip import ProposalStatus, Trip
from src.models.viability import ViabilityResult

logger = logging.getLogger(__name__)


def resolve_rule(rule: dict[str, Any] | None, settings: Settings | None = None) -> tuple[int, int]:
    """Return ``(min_interested, min_votes)`` for a stored rule, filling defaults."""
    active_settings = settings or get_settings()
    rule = rule or {}
    min_interested = rule.get("min_interested")
    min_votes = rule.get("min_votes")
    if min_interested is None:
        min_interested = active_settings.default_min_interested
    if min_votes is None:
        min_votes = active_settings.default_min_votes
    return int(min_interested), int(min_votes)


def is_viable(*, votes: int, interested: int, min_votes: int, min_interested: int) -> bool:
    return votes >= min_votes and interested >= min_interested


async def evaluate_trip(*, session: AsyncSession, trip: Trip) -> ViabilityResult:
    min_interested, min_votes = resolve_rule(trip.viability_rule)
    stats = await get_proposal_stats(session, trip.id)
    return ViabilityResult(
        is_viable=is_viable(
            votes=stats.votes,
            interested=stats.interested,
            min_votes=min_votes,
            min_interested=min_interested,
        ),
        votes=stats.votes,
        interested=stats.interested,
        required=min_interested,
    )


async def evaluate(*, session: AsyncSession, trip_id: int) -> ViabilityResult:
    trip = await get_trip(session, trip_id)
    if trip is None:
        return ViabilityResult(
            is_viable=False,
            votes=0,
            interested=0,
            required=get_settings().default_min_interested,
        )
    return await evaluate_trip(session=session, trip=trip)


async def promote_if_viable(
    *,
    session: AsyncSession,
    trip_id: int,
    result: ViabilityResult | None = None,
) -> bool:
    """Move a viable proposal from ``voting`` to ``ready_to_schedule``.

    Returns True only for the call that performed the transition.
    """
    if result is None:
        result = await evaluate(session=session, trip_id=trip_id)
    if not result.is_viable:
        return False

    now = datetime.now(UTC)
    promoted = await transition_trip_status(
        session,
        trip_id,
        from_status=ProposalStatus.VOTING,
        to_status=ProposalStatus.READY_TO_SCHEDULE,
        status_changed_at=now,
        updated_at=now,
    )
    await session.commit()
    if promoted:
        logger.info(
            "Proposal %s promoted to ready_to_schedule (votes=%d interested=%d)",
            trip_id,
            result.votes,
            result.interested,
            extra={
                "event_type": "proposals.promoted",
                "ops_payload": {"trip_id": trip_id, "votes": result.votes, "interested": result.interested},
            },
        )
    return bool(promoted)


async def evaluate_and_promote(*, session: AsyncSession, trip_id: int) -> ViabilityResult:
    result = await evaluate(session=session, trip_id=trip_id)
    await promote_if_viable(session=session, trip_id=trip_id, result=result)
    return result


async def sweep_viable_proposals(*, session: AsyncSession) -> list[int]:
    """Promote every viable proposal currently in voting; returns the promoted ids."""
    promoted: list[int] = []
    for trip in await list_trips_by_status(session, ProposalStatus.VOTING):
        result = await evaluate_trip(session=session, trip=trip)
        if await promote_if_viable(session=session, trip_id=trip.id, result=result):
            promoted.append(trip.id)
    return promoted
