from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from src.db.connection import Base

SWEEP_JOB = "viability_sweep"


class SchedulerHeartbeat(Base):
    """Last run of a background job, one row per job name."""

    __tablename__ = "scheduler_heartbeat"

    job: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_run_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="ok")
    detail: Mapped[str | None] = mapped_column(String(256), nullable=True)
    runs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


async def get_heartbeat(session: AsyncSession, job: str = SWEEP_JOB) -> SchedulerHeartbeat | None:
    result = await session.execute(select(SchedulerHeartbeat).where(SchedulerHeartbeat.job == job))
    return result.scalar_one_or_none()


async def upsert_heartbeat(
    session: AsyncSession,
    *,
    status: str = "ok",
    detail: str | None = None,
    job: str = SWEEP_JOB,
) -> SchedulerHeartbeat:
    """Record a finished run so /ops/status can report staleness."""
    row = await get_heartbeat(session, job)
    if row is None:
        row = SchedulerHeartbeat(job=job, runs=0)
        session.add(row)
    row.last_run_at = datetime.now(UTC)
    row.status = status
    row.detail = detail[:256] if detail else None
    row.runs = (row.runs or 0) + 1
    await session.commit()
    return row
