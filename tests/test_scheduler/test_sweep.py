from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.db.heartbeat import get_heartbeat
from src.db.queries import create_trip, get_trip
from src.handlers.interest import add_interest
from src.models.trip import ProposalStatus, Trip
from src.scheduler.main import SWEEP_LOCK, run_once, run_sweep


async def _viable_trip(session: AsyncSession) -> int:
    trip = await create_trip(
        session,
        Trip(
            title="Sortelha",
            slug="sortelha",
            short_description="Aldeia histórica",
            destination="Sortelha",
            proposal_status=ProposalStatus.VOTING.to_column(),
            viability_rule={"min_interested": 1, "min_votes": 0},
            is_published=True,
        ),
    )
    await session.commit()
    await add_interest(session=session, user_id="u1", trip_id=trip.id)
    return trip.id


@pytest.mark.asyncio
async def test_run_sweep_promotes(db_session: AsyncSession) -> None:
    trip_id = await _viable_trip(db_session)

    result = await run_sweep(session=db_session)

    assert result.promoted == [trip_id]
    assert result.errors == []
    trip = await get_trip(db_session, trip_id)
    assert trip is not None
    await db_session.refresh(trip)
    assert trip.status is ProposalStatus.READY_TO_SCHEDULE


@pytest.mark.asyncio
async def test_run_sweep_skips_when_already_running(db_session: AsyncSession) -> None:
    await _viable_trip(db_session)

    async with SWEEP_LOCK:
        result = await run_sweep(session=db_session)

    assert result.promoted == []
    assert result.errors == ["sweep already running"]


@pytest.mark.asyncio
async def test_run_sweep_records_database_errors() -> None:
    session = AsyncMock()
    failure = OperationalError("SELECT 1", {}, Exception("db down"))
    with patch("src.scheduler.main.sweep_viable_proposals", new=AsyncMock(side_effect=failure)):
        result = await run_sweep(session=session)

    assert result.promoted == []
    assert len(result.errors) == 1
    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_once_writes_heartbeat(db_session: AsyncSession) -> None:
    await _viable_trip(db_session)
    factory = async_sessionmaker(db_session.bind, expire_on_commit=False)

    result = await run_once(session_factory=factory)

    assert len(result.promoted) == 1
    heartbeat = await get_heartbeat(db_session)
    assert heartbeat is not None
    assert heartbeat.status == "ok"
    assert heartbeat.detail == "promoted=1"
    assert heartbeat.job == "viability_sweep"
    assert heartbeat.runs == 1

    await run_once(session_factory=factory)
    await db_session.refresh(heartbeat)
    assert heartbeat.runs == 2
    assert heartbeat.detail == "promoted=0"
