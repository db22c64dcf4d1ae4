from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.authn import optional_user_id, require_user_id
from src.config import get_settings
from src.db.connection import get_db
from src.db.queries import get_display_names, get_proposal_stats, get_trip_by_slug
from src.handlers.interest import add_interest, list_interest, remove_interest
from src.handlers.lifecycle import create_proposal_from_draft, list_club_proposals
from src.handlers.viability import evaluate_and_promote
from src.handlers.voting import add_vote, has_voted, remove_vote
from src.models.draft import DraftSubmission
from src.models.interest import InterestCreate, InterestRead, PublicVisibility
from src.models.trip import Trip, TripRead, TripTeaser
from src.models.viability import ProposalStats, ViabilityResult
from src.models.vote import VoteRead

router = APIRouter()


class ProposalSummary(BaseModel):
    trip: TripRead | TripTeaser
    stats: ProposalStats


class PublicInterestEntry(BaseModel):
    """Interest list row; identity fields are only filled for ``named`` entries."""

    user_id: str | None = None
    display_name: str | None = None
    public_visibility: str
    note: str | None
    created_at: datetime


class ProposalDetail(BaseModel):
    trip: TripRead
    stats: ProposalStats
    interested: list[PublicInterestEntry] | None = None


class VoteResponse(BaseModel):
    vote: VoteRead
    stats: ProposalStats


class InterestResponse(BaseModel):
    interest: InterestRead | None = None
    updated: bool = False
    stats: ProposalStats


class RemovalResponse(BaseModel):
    success: bool
    stats: ProposalStats


class DraftResponse(BaseModel):
    success: bool
    trip: TripRead


async def _stats(session: AsyncSession, trip_id: int) -> ProposalStats:
    result = await evaluate_and_promote(session=session, trip_id=trip_id)
    return ProposalStats(votes=result.votes, interested=result.interested)


def _can_view(trip: Trip, user_id: str | None) -> bool:
    if trip.is_published:
        return True
    if user_id is None:
        return False
    return user_id == trip.created_by_user_id or user_id in get_settings().admin_user_id_list()


@router.get("", response_model=list[ProposalSummary])
async def list_proposals(
    user_id: Annotated[str | None, Depends(optional_user_id)],
    session: AsyncSession = Depends(get_db),
) -> list[ProposalSummary]:
    """Published trips with counts. Anonymous visitors get teaser fields only."""
    summaries: list[ProposalSummary] = []
    for trip in await list_club_proposals(session=session):
        stats = await get_proposal_stats(session, trip.id)
        schema: TripRead | TripTeaser = trip.to_schema() if user_id else TripTeaser.from_orm_model(trip)
        summaries.append(ProposalSummary(trip=schema, stats=stats))
    return summaries


@router.post("/drafts", response_model=DraftResponse, status_code=status.HTTP_201_CREATED)
async def submit_draft(
    user_id: Annotated[str, Depends(require_user_id)],
    payload: Annotated[dict[str, Any], Body()],
    session: AsyncSession = Depends(get_db),
) -> DraftResponse:
    try:
        submission = DraftSubmission.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc
    trip = await create_proposal_from_draft(session=session, user_id=user_id, draft=submission.draft)
    return DraftResponse(success=True, trip=trip.to_schema())


@router.get("/{slug}", response_model=ProposalDetail)
async def get_proposal(
    slug: str,
    user_id: Annotated[str | None, Depends(optional_user_id)],
    session: AsyncSession = Depends(get_db),
) -> ProposalDetail:
    trip = await get_trip_by_slug(session, slug)
    if trip is None or not _can_view(trip, user_id):
        raise HTTPException(status_code=404, detail="not_found")
    stats = await _stats(session, trip.id)

    interested: list[PublicInterestEntry] | None = None
    if user_id:
        entries = await list_interest(session=session, trip_id=trip.id)
        named_ids = [e.user_id for e in entries if e.public_visibility == PublicVisibility.NAMED.value]
        names = await get_display_names(session, named_ids)
        interested = []
        for entry in entries:
            if entry.public_visibility == PublicVisibility.NAMED.value:
                interested.append(
                    PublicInterestEntry(
                        user_id=entry.user_id,
                        display_name=names.get(entry.user_id),
                        public_visibility=entry.public_visibility,
                        note=entry.note,
                        created_at=entry.created_at,
                    )
                )
            else:
                interested.append(
                    PublicInterestEntry(
                        public_visibility=entry.public_visibility,
                        note=entry.note,
                        created_at=entry.created_at,
                    )
                )
    await session.refresh(trip)
    return ProposalDetail(trip=trip.to_schema(), stats=stats, interested=interested)


@router.post("/{trip_id}/vote", response_model=VoteResponse, status_code=status.HTTP_201_CREATED)
async def vote(
    trip_id: int,
    user_id: Annotated[str, Depends(require_user_id)],
    session: AsyncSession = Depends(get_db),
) -> VoteResponse:
    record, result = await add_vote(session=session, user_id=user_id, trip_id=trip_id)
    if result == "not_found":
        raise HTTPException(status_code=404, detail=result)
    if record is None:
        raise HTTPException(status_code=400, detail=result)
    return VoteResponse(vote=record.to_schema(), stats=await _stats(session, trip_id))


@router.delete("/{trip_id}/vote", response_model=RemovalResponse)
async def unvote(
    trip_id: int,
    user_id: Annotated[str, Depends(require_user_id)],
    session: AsyncSession = Depends(get_db),
) -> RemovalResponse:
    await remove_vote(session=session, user_id=user_id, trip_id=trip_id)
    return RemovalResponse(success=True, stats=await _stats(session, trip_id))


@router.get("/{trip_id}/voted")
async def voted(
    trip_id: int,
    user_id: Annotated[str | None, Depends(optional_user_id)],
    session: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    if user_id is None:
        return {"voted": False}
    return {"voted": await has_voted(session=session, user_id=user_id, trip_id=trip_id)}


@router.post("/{trip_id}/interest", response_model=InterestResponse, status_code=status.HTTP_201_CREATED)
async def register_interest(
    trip_id: int,
    response: Response,
    user_id: Annotated[str, Depends(require_user_id)],
    body: InterestCreate | None = None,
    session: AsyncSession = Depends(get_db),
) -> InterestResponse:
    body = body or InterestCreate()
    record, result = await add_interest(
        session=session,
        user_id=user_id,
        trip_id=trip_id,
        public_visibility=body.public_visibility,
        note=body.note,
    )
    if result == "not_found":
        raise HTTPException(status_code=404, detail=result)
    if result in ("already_interested", "not_open"):
        raise HTTPException(status_code=400, detail=result)

    stats = await _stats(session, trip_id)
    if result == "updated":
        response.status_code = status.HTTP_200_OK
        return InterestResponse(updated=True, stats=stats)
    return InterestResponse(interest=record.to_schema() if record else None, stats=stats)


@router.delete("/{trip_id}/interest", response_model=RemovalResponse)
async def withdraw_interest(
    trip_id: int,
    user_id: Annotated[str, Depends(require_user_id)],
    session: AsyncSession = Depends(get_db),
) -> RemovalResponse:
    await remove_interest(session=session, user_id=user_id, trip_id=trip_id)
    return RemovalResponse(success=True, stats=await _stats(session, trip_id))


@router.get("/{trip_id}/stats", response_model=ProposalStats)
async def stats(
    trip_id: int,
    session: AsyncSession = Depends(get_db),
) -> ProposalStats:
    return await _stats(session, trip_id)


@router.get("/{trip_id}/viability", response_model=ViabilityResult)
async def viability(
    trip_id: int,
    session: AsyncSession = Depends(get_db),
) -> ViabilityResult:
    return await evaluate_and_promote(session=session, trip_id=trip_id)
