from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.authn import require_user_id
from src.db.connection import get_db
from src.handlers.credits import get_balance, get_history
from src.handlers.interest import list_user_interests
from src.handlers.voting import list_user_votes
from src.models.credit import CreditTransactionRead
from src.models.trip import TripTeaser

router = APIRouter()


class UserVoteEntry(BaseModel):
    voted_at: datetime
    trip: TripTeaser


class UserInterestEntry(BaseModel):
    interested_at: datetime
    public_visibility: str
    note: str | None
    trip: TripTeaser


@router.get("/credits")
async def credits(
    user_id: Annotated[str, Depends(require_user_id)],
    session: AsyncSession = Depends(get_db),
) -> dict[str, int]:
    return {"credits": await get_balance(session=session, user_id=user_id)}


@router.get("/credits/history", response_model=list[CreditTransactionRead])
async def credit_history(
    user_id: Annotated[str, Depends(require_user_id)],
    session: AsyncSession = Depends(get_db),
) -> list[CreditTransactionRead]:
    return [row.to_schema() for row in await get_history(session=session, user_id=user_id)]


@router.get("/votes", response_model=list[UserVoteEntry])
async def votes(
    user_id: Annotated[str, Depends(require_user_id)],
    session: AsyncSession = Depends(get_db),
) -> list[UserVoteEntry]:
    rows = await list_user_votes(session=session, user_id=user_id)
    return [UserVoteEntry(voted_at=vote.created_at, trip=TripTeaser.from_orm_model(trip)) for vote, trip in rows]


@router.get("/interests", response_model=list[UserInterestEntry])
async def interests(
    user_id: Annotated[str, Depends(require_user_id)],
    session: AsyncSession = Depends(get_db),
) -> list[UserInterestEntry]:
    rows = await list_user_interests(session=session, user_id=user_id)
    return [
        UserInterestEntry(
            interested_at=interest.created_at,
            public_visibility=interest.public_visibility,
            note=interest.note,
            trip=TripTeaser.from_orm_model(trip),
        )
        for interest, trip in rows
    ]
