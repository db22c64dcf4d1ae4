"""Proposal lifecycle: creation, review, scheduling and archival.

Transitions::

    pending_review --approve--> voting --(viability)--> ready_to_schedule
    voting | ready_to_schedule --schedule--> scheduled
    pending_review | voting --archive--> archived

Every transition commits once, so the status change and any creator reward
are written together or not at all. Handlers return ``(trip, status)`` where
status is one of ``approved``, ``scheduled``, ``archived``, ``reopened``,
``already_*``, ``not_found``, ``invalid_transition`` or ``invalid_status``.
"""

from __future__ import annotations

import logging
import re
import time
import unicodedata
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings
from src.db.queries import create_trip, get_trip, list_published_trips, list_trips_by_status, mark_reward_paid
from src.handlers.credits import grant_credit, log_credit_granted
from src.models.credit import CreditReferenceType, CreditTransactionType
from src.models.draft import ProposalDraft
from src.models.trip import ProposalStatus, SourceType, Trip, TripCreate

logger = logging.getLogger(__name__)

SCHEDULABLE_STATUSES = frozenset({ProposalStatus.VOTING, ProposalStatus.READY_TO_SCHEDULE})
ARCHIVABLE_STATUSES = frozenset({ProposalStatus.PENDING_REVIEW, ProposalStatus.VOTING})
REOPENABLE_STATUSES = frozenset({ProposalStatus.VOTING, ProposalStatus.ARCHIVED})
DIRECT_STATUS_VALUES = ("approved", "archived", "pending_review")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def slugify_title(title: str, *, timestamp_ms: int | None = None) -> str:
    """ASCII slug of ``title`` with a base-36 millisecond suffix for uniqueness."""
    normalized = unicodedata.normalize("NFD", title.lower())
    ascii_only = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    base = re.sub(r"[^a-z0-9]+", "-", ascii_only).strip("-")
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    suffix = _to_base36(timestamp_ms)
    # slug column holds 100 chars
    return f"{base[: 99 - len(suffix)]}-{suffix}" if base else suffix


def _log_transition(trip: Trip, action: str, previous: ProposalStatus) -> None:
    logger.info(
        "Proposal %s %s (%s -> %s)",
        trip.id,
        action,
        previous.value,
        trip.status.value,
        extra={
            "event_type": f"proposals.{action}",
            "ops_payload": {"trip_id": trip.id, "from": previous.value, "to": trip.status.value},
        },
    )


def _set_status(trip: Trip, status: ProposalStatus, now: datetime) -> None:
    trip.proposal_status = status.to_column()
    trip.status_changed_at = now
    trip.updated_at = now


async def create_proposal(*, session: AsyncSession, data: TripCreate) -> Trip:
    """Seed an NTG-authored proposal (or legacy trip) from the admin console."""
    settings = get_settings()
    now = datetime.now(UTC)
    status = data.proposal_status
    trip = Trip(
        title=data.title,
        slug=data.slug or slugify_title(data.title),
        short_description=data.short_description,
        long_description=data.long_description,
        destination=data.destination,
        destinations=data.destinations,
        duration=data.duration,
        duration_hours_est=data.duration_hours_est,
        difficulty=data.difficulty,
        price=data.price,
        hero_image=data.hero_image,
        tags=data.tags,
        is_featured=data.is_featured,
        start_city=data.start_city or settings.default_start_city,
        capacity=data.capacity if data.capacity is not None else settings.default_trip_capacity,
        includes=data.includes,
        excludes=data.excludes,
        source_type=SourceType.NTG.value,
        proposal_status=status.to_column(),
        viability_rule=data.viability_rule.model_dump(exclude_none=True) if data.viability_rule else None,
        creator_reward_cents=(
            data.creator_reward_cents
            if data.creator_reward_cents is not None
            else settings.default_creator_reward_cents
        ),
        is_published=status in {ProposalStatus.VOTING, ProposalStatus.READY_TO_SCHEDULE},
        status_changed_at=now if status is not ProposalStatus.NOT_A_PROPOSAL else None,
    )
    trip = await create_trip(session, trip)
    await session.commit()
    logger.info(
        "Proposal %s seeded by admin in %s",
        trip.id,
        status.value,
        extra={"event_type": "proposals.seeded", "ops_payload": {"trip_id": trip.id}},
    )
    return trip


async def create_proposal_from_draft(*, session: AsyncSession, user_id: str, draft: ProposalDraft) -> Trip:
    """Store a validated member draft as an unpublished ``pending_review`` proposal."""
    settings = get_settings()
    now = datetime.now(UTC)
    stop_names = [stop.name for stop in draft.stops]
    itinerary = draft.itinerary
    prices = draft.price_estimated
    viability_rule = (
        {"min_interested": draft.viability_rule.min_interested}
        if draft.viability_rule
        else {"min_interested": settings.draft_min_interested}
    )

    trip = Trip(
        slug=slugify_title(draft.title),
        title=draft.title,
        short_description=draft.narrative_short or draft.subtitle or "",
        long_description=draft.narrative_short,
        destination=", ".join(stop_names) or "Portugal",
        destinations=stop_names,
        duration=f"{draft.duration_hours_est}h",
        duration_hours_est=draft.duration_hours_est,
        difficulty=draft.difficulty,
        price_essential_min=int(prices.essential.min) if prices else None,
        price_essential_max=int(prices.essential.max) if prices else None,
        price_complete_min=int(prices.complete.min) if prices else None,
        price_complete_max=int(prices.complete.max) if prices else None,
        includes=draft.includes,
        excludes=draft.excludes,
        optional_addons=[addon.name for addon in draft.optional_add_ons],
        itinerary_essential=[item.model_dump() for item in itinerary.essential] if itinerary else [],
        itinerary_complete=[item.model_dump() for item in itinerary.complete] if itinerary else [],
        tags=draft.tags,
        capacity=draft.capacity_suggestion,
        cover_image_prompt=draft.cover_image_prompt,
        start_city=draft.start_city or settings.default_start_city,
        source_type=SourceType.MEMBER.value,
        created_by_user_id=user_id,
        proposal_status=ProposalStatus.PENDING_REVIEW.to_column(),
        viability_rule=viability_rule,
        creator_reward_cents=settings.default_creator_reward_cents,
        is_published=False,
        is_featured=False,
        status_changed_at=now,
    )
    trip = await create_trip(session, trip)
    await session.commit()
    logger.info(
        "Member proposal %s submitted for review",
        trip.id,
        extra={"event_type": "proposals.submitted", "ops_payload": {"trip_id": trip.id}},
    )
    return trip


async def approve_proposal(
    *,
    session: AsyncSession,
    trip_id: int,
    admin_notes: str | None = None,
) -> tuple[Trip | None, str]:
    trip = await get_trip(session, trip_id, for_update=True)
    if trip is None:
        return None, "not_found"
    previous = trip.status
    if previous is ProposalStatus.VOTING:
        return trip, "already_approved"
    if previous is not ProposalStatus.PENDING_REVIEW:
        return trip, "invalid_transition"

    now = datetime.now(UTC)
    _set_status(trip, ProposalStatus.VOTING, now)
    trip.is_published = True
    trip.reviewed_at = now
    if admin_notes:
        trip.admin_notes = admin_notes
    await session.commit()
    _log_transition(trip, "approved", previous)
    return trip, "approved"


async def schedule_proposal(*, session: AsyncSession, trip_id: int) -> tuple[Trip | None, str]:
    """Schedule a proposal and pay its creator reward at most once."""
    trip = await get_trip(session, trip_id, for_update=True)
    if trip is None:
        return None, "not_found"
    previous = trip.status
    if previous is ProposalStatus.SCHEDULED:
        return trip, "already_scheduled"
    if previous not in SCHEDULABLE_STATUSES:
        logger.info(
            "Schedule refused for trip %s in status %s",
            trip.id,
            previous.value,
            extra={
                "event_type": "proposals.schedule_refused",
                "ops_payload": {"trip_id": trip.id, "status": previous.value},
            },
        )
        return trip, "invalid_transition"

    now = datetime.now(UTC)
    reward = None
    try:
        _set_status(trip, ProposalStatus.SCHEDULED, now)
        trip.scheduled_at = now
        await session.flush()

        amount = trip.creator_reward_cents
        if trip.reward_eligible and amount > 0 and trip.reward_paid_at is None:
            if await mark_reward_paid(session, trip, now=now):
                reward = await grant_credit(
                    session=session,
                    user_id=trip.created_by_user_id or "",
                    amount_cents=amount,
                    type_=CreditTransactionType.CREATOR_REWARD,
                    reference_type=CreditReferenceType.TRIP,
                    reference_id=trip.id,
                    description=f'Reward for creating the trip "{trip.title}"',
                    commit=False,
                )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    _log_transition(trip, "scheduled", previous)
    if reward is not None:
        log_credit_granted(reward)
    return trip, "scheduled"


async def archive_proposal(
    *,
    session: AsyncSession,
    trip_id: int,
    reason: str | None = None,
) -> tuple[Trip | None, str]:
    trip = await get_trip(session, trip_id, for_update=True)
    if trip is None:
        return None, "not_found"
    previous = trip.status
    if previous is ProposalStatus.ARCHIVED:
        return trip, "already_archived"
    if previous not in ARCHIVABLE_STATUSES:
        return trip, "invalid_transition"

    _set_status(trip, ProposalStatus.ARCHIVED, datetime.now(UTC))
    trip.is_published = False
    if reason:
        trip.admin_notes = reason
    await session.commit()
    _log_transition(trip, "archived", previous)
    return trip, "archived"


async def reopen_proposal(*, session: AsyncSession, trip_id: int) -> tuple[Trip | None, str]:
    """Send a proposal back to review, taking it off the public list."""
    trip = await get_trip(session, trip_id, for_update=True)
    if trip is None:
        return None, "not_found"
    previous = trip.status
    if previous is ProposalStatus.PENDING_REVIEW:
        return trip, "already_pending_review"
    if previous not in REOPENABLE_STATUSES:
        return trip, "invalid_transition"

    _set_status(trip, ProposalStatus.PENDING_REVIEW, datetime.now(UTC))
    trip.is_published = False
    await session.commit()
    _log_transition(trip, "reopened", previous)
    return trip, "reopened"


async def set_proposal_status(*, session: AsyncSession, trip_id: int, status: str) -> tuple[Trip | None, str]:
    if status not in DIRECT_STATUS_VALUES:
        return None, "invalid_status"
    if status == "approved":
        return await approve_proposal(session=session, trip_id=trip_id)
    if status == "archived":
        return await archive_proposal(session=session, trip_id=trip_id)
    return await reopen_proposal(session=session, trip_id=trip_id)


async def get_pending_proposals(*, session: AsyncSession) -> list[Trip]:
    return await list_trips_by_status(session, ProposalStatus.PENDING_REVIEW)


async def get_proposals_by_status(*, session: AsyncSession, status: ProposalStatus) -> list[Trip]:
    return await list_trips_by_status(session, status)


async def list_club_proposals(*, session: AsyncSession) -> list[Trip]:
    return await list_published_trips(session)
