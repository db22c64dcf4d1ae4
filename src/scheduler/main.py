from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.heartbeat import upsert_heartbeat
from src.handlers.viability import sweep_viable_proposals

logger = logging.getLogger(__name__)

SWEEP_LOCK = asyncio.Lock()


@dataclass(slots=True)
class SweepResult:
    promoted: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


async def run_sweep(*, session: AsyncSession) -> SweepResult:
    """Promote every viable proposal in voting. Concurrent calls are skipped."""
    if SWEEP_LOCK.locked():
        return SweepResult(errors=["sweep already running"])

    result = SweepResult()
    async with SWEEP_LOCK:
        try:
            result.promoted = await sweep_viable_proposals(session=session)
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.exception(
                "Viability sweep failed: %s",
                exc,
                extra={
                    "event_type": "scheduler.sweep.error",
                    "ops_payload": {
                        "exception_type": type(exc).__name__,
                        "promoted_before_error": len(result.promoted),
                    },
                },
            )
            result.errors.append(str(exc))
            return result

    logger.info(
        "Viability sweep promoted %d proposals",
        len(result.promoted),
        extra={"event_type": "scheduler.sweep.completed", "ops_payload": {"promoted": result.promoted}},
    )
    return result


async def run_once(*, session_factory) -> SweepResult:  # type: ignore[no-untyped-def]
    async with session_factory() as session:
        result = await run_sweep(session=session)
    async with session_factory() as session:
        status = "error" if result.errors else "ok"
        detail = f"promoted={len(result.promoted)}"
        if result.errors:
            detail += f" errors={result.errors}"
        await upsert_heartbeat(session, status=status, detail=detail)
    return result


async def scheduler_loop(
    *,
    session_factory,
    interval_minutes: float,
) -> None:  # type: ignore[no-untyped-def]
    while True:
        await run_once(session_factory=session_factory)
        await asyncio.sleep(interval_minutes * 60)
