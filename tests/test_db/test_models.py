from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.queries import (
    count_credit_transactions,
    create_credit_transaction,
    create_interest,
    create_trip,
    create_vote,
    get_display_names,
    get_or_create_profile,
    get_proposal_stats,
    get_trip_by_slug,
    list_interest_entries,
    list_published_trips,
    list_trips_by_status,
    mark_reward_paid,
    sum_credit_transactions,
    transition_trip_status,
)
from src.models import (
    CreditTransactionCreate,
    CreditTransactionType,
    DraftSubmission,
    ProposalDraft,
    ProposalStatus,
    PublicVisibility,
    Trip,
    TripCreate,
    TripTeaser,
    ViabilityRule,
)


def _trip(slug: str, *, status: ProposalStatus = ProposalStatus.VOTING, published: bool = True) -> Trip:
    return Trip(
        title=f"Trip {slug}",
        slug=slug,
        short_description="A day out",
        destination="Aveiro",
        destinations=["Aveiro", "Ílhavo"],
        proposal_status=status.to_column(),
        is_published=published,
    )


def _draft_payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "title": "Serra da Estrela",
        "narrativeShort": "Um dia inteiro na serra com queijo.",
        "stops": [{"name": "Manteigas"}, {"name": "Torre"}],
        "durationHoursEst": 12,
        "difficulty": "moderada",
        "priceEstimated": {
            "essential": {"min": 40, "max": 55},
            "complete": {"min": 70, "max": 90.5},
        },
        "itinerary": {"essential": [{"time": "08:00", "label": "Partida", "details": "Coimbra B"}]},
        "optionalAddOns": [{"name": "Almoço", "priceSuggestion": {"min": 10, "max": 15}}],
        "capacitySuggestion": 12,
    }
    payload.update(overrides)
    return payload


# --- ProposalStatus mapping ---

def test_proposal_status_column_mapping() -> None:
    assert ProposalStatus.from_column(None) is ProposalStatus.NOT_A_PROPOSAL
    assert ProposalStatus.from_column("voting") is ProposalStatus.VOTING
    assert ProposalStatus.NOT_A_PROPOSAL.to_column() is None
    assert ProposalStatus.SCHEDULED.to_column() == "scheduled"
    with pytest.raises(ValueError):
        ProposalStatus.from_column("published")


def test_trip_status_and_reward_eligibility() -> None:
    trip = _trip("x")
    assert trip.status is ProposalStatus.VOTING
    assert trip.reward_eligible is False

    trip.source_type = "member"
    assert trip.reward_eligible is False
    trip.created_by_user_id = "member-1"
    assert trip.reward_eligible is True


def test_viability_rule_and_trip_create_validation() -> None:
    assert ViabilityRule(min_interested=2).min_votes is None
    with pytest.raises(ValidationError):
        ViabilityRule(min_interested=-1)
    with pytest.raises(ValidationError):
        TripCreate(title="", short_description="s", destination="d")
    with pytest.raises(ValidationError):
        TripCreate(title="t", short_description="s", destination="d", creator_reward_cents=-5)


# --- Draft schema ---

def test_draft_accepts_generator_payload() -> None:
    draft = ProposalDraft.model_validate(_draft_payload())
    assert draft.start_city == "Coimbra"
    assert [stop.name for stop in draft.stops] == ["Manteigas", "Torre"]
    assert draft.price_estimated is not None
    assert draft.price_estimated.complete.max == 90.5
    assert draft.optional_add_ons[0].price_suggestion is not None
    assert draft.viability_rule is None


def test_draft_submission_wraps_draft() -> None:
    submission = DraftSubmission.model_validate({"draft": _draft_payload(viabilityRule={"min_interested": 6})})
    assert submission.draft.viability_rule is not None
    assert submission.draft.viability_rule.min_interested == 6


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "Ab"},
        {"narrativeShort": "short"},
        {"durationHoursEst": 30},
        {"difficulty": "extrema"},
        {"capacitySuggestion": 1},
        {"priceEstimated": {"essential": {"min": 60, "max": 50}, "complete": {"min": 1, "max": 2}}},
        {"stops": [{"description": "no name"}]},
        {"itinerary": {"essential": [{"time": "08:00"}]}},
    ],
)
def test_draft_rejects_structural_violations(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        ProposalDraft.model_validate(_draft_payload(**overrides))


# --- Queries ---

@pytest.mark.asyncio
async def test_trip_create_lookup_and_teaser(db_session: AsyncSession) -> None:
    trip = await create_trip(db_session, _trip("aveiro-1"))
    await db_session.commit()

    found = await get_trip_by_slug(db_session, "aveiro-1")
    assert found is not None
    assert found.id == trip.id
    assert found.creator_reward_cents == 2000
    assert found.source_type == "ntg"
    assert await get_trip_by_slug(db_session, "missing") is None

    teaser = TripTeaser.from_orm_model(found)
    assert teaser.stops_count == 2
    assert found.to_schema().slug == "aveiro-1"


@pytest.mark.asyncio
async def test_slug_is_unique(db_session: AsyncSession) -> None:
    await create_trip(db_session, _trip("same"))
    with pytest.raises(IntegrityError):
        await create_trip(db_session, _trip("same"))
    await db_session.rollback()


@pytest.mark.asyncio
async def test_list_by_status_and_published(db_session: AsyncSession) -> None:
    await create_trip(db_session, _trip("v1"))
    await create_trip(db_session, _trip("p1", status=ProposalStatus.PENDING_REVIEW, published=False))
    await create_trip(db_session, _trip("legacy", status=ProposalStatus.NOT_A_PROPOSAL))
    await db_session.commit()

    voting = await list_trips_by_status(db_session, ProposalStatus.VOTING)
    pending = await list_trips_by_status(db_session, ProposalStatus.PENDING_REVIEW)
    legacy = await list_trips_by_status(db_session, ProposalStatus.NOT_A_PROPOSAL)
    published = await list_published_trips(db_session)

    assert [t.slug for t in voting] == ["v1"]
    assert [t.slug for t in pending] == ["p1"]
    assert [t.slug for t in legacy] == ["legacy"]
    assert {t.slug for t in published} == {"v1", "legacy"}


@pytest.mark.asyncio
async def test_vote_and_interest_uniqueness(db_session: AsyncSession) -> None:
    trip_id = (await create_trip(db_session, _trip("uniq"))).id
    await create_vote(db_session, "member-1", trip_id)
    await db_session.commit()
    with pytest.raises(IntegrityError):
        await create_vote(db_session, "member-1", trip_id)
    await db_session.rollback()

    await create_interest(db_session, "member-1", trip_id)
    await db_session.commit()
    with pytest.raises(IntegrityError):
        await create_interest(db_session, "member-1", trip_id)
    await db_session.rollback()


@pytest.mark.asyncio
async def test_proposal_stats_and_interest_entries(db_session: AsyncSession) -> None:
    trip = await create_trip(db_session, _trip("stats"))
    await create_vote(db_session, "a", trip.id)
    await create_vote(db_session, "b", trip.id)
    await create_interest(db_session, "a", trip.id)
    await create_interest(db_session, "c", trip.id, public_visibility=PublicVisibility.NAMED, note="count me in")
    await db_session.commit()

    stats = await get_proposal_stats(db_session, trip.id)
    assert (stats.votes, stats.interested) == (2, 2)

    entries = await list_interest_entries(db_session, trip.id)
    assert [e.user_id for e in entries] == ["c", "a"]
    assert entries[0].public_visibility == "named"
    assert entries[0].note == "count me in"


@pytest.mark.asyncio
async def test_transition_trip_status_is_conditional(db_session: AsyncSession) -> None:
    trip = await create_trip(db_session, _trip("cond"))
    await db_session.commit()

    moved = await transition_trip_status(
        db_session, trip.id, from_status=ProposalStatus.VOTING, to_status=ProposalStatus.READY_TO_SCHEDULE
    )
    again = await transition_trip_status(
        db_session, trip.id, from_status=ProposalStatus.VOTING, to_status=ProposalStatus.READY_TO_SCHEDULE
    )
    await db_session.commit()
    await db_session.refresh(trip)

    assert (moved, again) == (1, 0)
    assert trip.status is ProposalStatus.READY_TO_SCHEDULE


@pytest.mark.asyncio
async def test_mark_reward_paid_claims_once(db_session: AsyncSession) -> None:
    trip = await create_trip(db_session, _trip("reward"))
    await db_session.commit()

    now = datetime.now(UTC)
    assert await mark_reward_paid(db_session, trip, now=now) is True
    assert await mark_reward_paid(db_session, trip, now=now) is False
    assert trip.reward_paid_at is not None


@pytest.mark.asyncio
async def test_profiles_and_credit_queries(db_session: AsyncSession) -> None:
    profile = await get_or_create_profile(db_session, "member-1")
    profile.display_name = "Ana"
    same = await get_or_create_profile(db_session, "member-1")
    await get_or_create_profile(db_session, "member-2")
    await db_session.commit()
    assert same.id == profile.id
    assert same.travel_credit_cents == 0

    names = await get_display_names(db_session, ["member-1", "member-2", "ghost"])
    assert names == {"member-1": "Ana"}
    assert await get_display_names(db_session, []) == {}

    assert await sum_credit_transactions(db_session, "member-1") == 0
    await create_credit_transaction(
        db_session,
        CreditTransactionCreate(
            user_id="member-1", amount_cents=2000, type=CreditTransactionType.CREATOR_REWARD, reference_id=7
        ),
    )
    await create_credit_transaction(
        db_session,
        CreditTransactionCreate(user_id="member-1", amount_cents=-500, type=CreditTransactionType.BOOKING_USED),
    )
    await db_session.commit()

    assert await sum_credit_transactions(db_session, "member-1") == 1500
    assert await count_credit_transactions(db_session, "member-1", type_="creator_reward", reference_id=7) == 1
    assert await count_credit_transactions(db_session, "member-1", type_="creator_reward", reference_id=8) == 0
