from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.authn import require_admin
from src.db.connection import get_db
from src.handlers.credits import adjust_credit, get_balance, reconcile_balance
from src.handlers.lifecycle import (
    approve_proposal,
    archive_proposal,
    create_proposal,
    get_pending_proposals,
    get_proposals_by_status,
    schedule_proposal,
    set_proposal_status,
)
from src.handlers.viability import evaluate_and_promote
from src.models.credit import CreditTransactionRead
from src.models.trip import ProposalStatus, Trip, TripCreate, TripRead
from src.models.viability import ViabilityResult
from src.scheduler.main import run_sweep

router = APIRouter(dependencies=[Depends(require_admin)])

_STATUS_CODES = {
    "not_found": 404,
    "invalid_status": 400,
    "invalid_transition": 400,
    "insufficient_credit": 400,
    "zero_amount": 400,
}


class ApproveRequest(BaseModel):
    admin_notes: str | None = None


class ArchiveRequest(BaseModel):
    reason: str | None = None


class StatusRequest(BaseModel):
    status: str


class TransitionResponse(BaseModel):
    result: str
    trip: TripRead


class SweepResponse(BaseModel):
    promoted: list[int]
    errors: list[str]


class CreditAdjustRequest(BaseModel):
    amount_cents: int
    description: str | None = Field(default=None, max_length=500)


class CreditAdjustResponse(BaseModel):
    transaction: CreditTransactionRead
    credits: int


def _raise_for(result: str) -> None:
    code = _STATUS_CODES.get(result)
    if code is not None:
        raise HTTPException(status_code=code, detail=result)


def _transition_response(trip: Trip | None, result: str) -> TransitionResponse:
    _raise_for(result)
    if trip is None:
        raise HTTPException(status_code=404, detail="not_found")
    return TransitionResponse(result=result, trip=trip.to_schema())


@router.post("/proposals", response_model=TripRead, status_code=status.HTTP_201_CREATED)
async def seed_proposal(
    data: TripCreate,
    session: AsyncSession = Depends(get_db),
) -> TripRead:
    trip = await create_proposal(session=session, data=data)
    return trip.to_schema()


@router.get("/proposals/pending", response_model=list[TripRead])
async def pending(session: AsyncSession = Depends(get_db)) -> list[TripRead]:
    return [trip.to_schema() for trip in await get_pending_proposals(session=session)]


@router.get("/proposals/by-status/{proposal_status}", response_model=list[TripRead])
async def by_status(
    proposal_status: ProposalStatus,
    session: AsyncSession = Depends(get_db),
) -> list[TripRead]:
    trips = await get_proposals_by_status(session=session, status=proposal_status)
    return [trip.to_schema() for trip in trips]


@router.post("/proposals/sweep", response_model=SweepResponse)
async def sweep(session: AsyncSession = Depends(get_db)) -> SweepResponse:
    result = await run_sweep(session=session)
    return SweepResponse(promoted=result.promoted, errors=result.errors)


@router.post("/proposals/{trip_id}/approve", response_model=TransitionResponse)
async def approve(
    trip_id: int,
    body: ApproveRequest | None = None,
    session: AsyncSession = Depends(get_db),
) -> TransitionResponse:
    notes = body.admin_notes if body else None
    trip, result = await approve_proposal(session=session, trip_id=trip_id, admin_notes=notes)
    return _transition_response(trip, result)


@router.post("/proposals/{trip_id}/schedule", response_model=TransitionResponse)
async def schedule(trip_id: int, session: AsyncSession = Depends(get_db)) -> TransitionResponse:
    trip, result = await schedule_proposal(session=session, trip_id=trip_id)
    return _transition_response(trip, result)


@router.post("/proposals/{trip_id}/archive", response_model=TransitionResponse)
async def archive(
    trip_id: int,
    body: ArchiveRequest | None = None,
    session: AsyncSession = Depends(get_db),
) -> TransitionResponse:
    reason = body.reason if body else None
    trip, result = await archive_proposal(session=session, trip_id=trip_id, reason=reason)
    return _transition_response(trip, result)


@router.patch("/proposals/{trip_id}/status", response_model=TransitionResponse)
async def update_status(
    trip_id: int,
    body: StatusRequest,
    session: AsyncSession = Depends(get_db),
) -> TransitionResponse:
    trip, result = await set_proposal_status(session=session, trip_id=trip_id, status=body.status)
    return _transition_response(trip, result)


@router.get("/proposals/{trip_id}/viability", response_model=ViabilityResult)
async def viability(trip_id: int, session: AsyncSession = Depends(get_db)) -> ViabilityResult:
    return await evaluate_and_promote(session=session, trip_id=trip_id)


@router.post("/credits/{user_id}/adjust", response_model=CreditAdjustResponse)
async def adjust_credits(
    user_id: str,
    body: CreditAdjustRequest,
    session: AsyncSession = Depends(get_db),
) -> CreditAdjustResponse:
    transaction, result = await adjust_credit(
        session=session,
        user_id=user_id,
        amount_cents=body.amount_cents,
        description=body.description,
    )
    _raise_for(result)
    if transaction is None:
        raise HTTPException(status_code=400, detail=result)
    credits = await get_balance(session=session, user_id=user_id)
    return CreditAdjustResponse(transaction=transaction.to_schema(), credits=credits)


@router.post("/credits/{user_id}/reconcile")
async def reconcile_credits(user_id: str, session: AsyncSession = Depends(get_db)) -> dict[str, int]:
    return {"credits": await reconcile_balance(session=session, user_id=user_id)}
