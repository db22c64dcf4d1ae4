from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.authn import resolve_user_id_from_bearer
from src.config import Settings, get_settings
from src.db.connection import check_db_health, get_db
from src.db.heartbeat import get_heartbeat
from src.ops import events as ops_events
from src.ops.events import EventLevel

router = APIRouter()

ServiceState = Literal["ok", "degraded", "error", "unknown"]


class ServiceStatus(BaseModel):
    name: str
    status: ServiceState
    detail: str | None = None


class OpsStatusResponse(BaseModel):
    generated_at: str
    services: list[ServiceStatus]


class OpsEventResponse(BaseModel):
    timestamp: str
    level: EventLevel
    component: str
    event_type: str
    message: str
    correlation_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


def _require_ops_access(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    if not settings.ops_console_enabled:
        raise HTTPException(status_code=404, detail="ops_console_disabled")
    user_id = resolve_user_id_from_bearer(authorization=authorization)
    if user_id not in settings.admin_user_id_list():
        raise HTTPException(status_code=403, detail="admin access required")
    return user_id


async def _scheduler_status(session: AsyncSession, settings: Settings) -> ServiceStatus:
    if not settings.viability_sweep_enabled:
        return ServiceStatus(name="viability_sweep", status="unknown", detail="sweep disabled")

    heartbeat = await get_heartbeat(session)
    if heartbeat is None:
        return ServiceStatus(name="viability_sweep", status="unknown", detail="no heartbeat recorded yet")

    last_run_at = heartbeat.last_run_at
    if last_run_at.tzinfo is None:
        last_run_at = last_run_at.replace(tzinfo=UTC)
    age = datetime.now(UTC) - last_run_at
    stale_threshold = timedelta(minutes=settings.viability_sweep_interval_minutes * 2.5)
    if heartbeat.status == "error":
        return ServiceStatus(
            name="viability_sweep",
            status="error",
            detail=heartbeat.detail or "last run had errors",
        )
    if age > stale_threshold:
        minutes_ago = age.total_seconds() / 60
        return ServiceStatus(
            name="viability_sweep",
            status="degraded",
            detail=(
                f"last heartbeat {minutes_ago:.1f}m ago "
                f"(expected every {settings.viability_sweep_interval_minutes:.1f}m)"
            ),
        )
    return ServiceStatus(name="viability_sweep", status="ok", detail=heartbeat.detail)


@router.get("/status", response_model=OpsStatusResponse)
async def status(
    settings: Annotated[Settings, Depends(get_settings)],
    _: Annotated[str, Depends(_require_ops_access)],
    session: AsyncSession = Depends(get_db),
) -> OpsStatusResponse:
    db_ok = await check_db_health()
    services = [
        ServiceStatus(name="api", status="ok"),
        ServiceStatus(name="database", status="ok" if db_ok else "error"),
        await _scheduler_status(session, settings),
    ]
    return OpsStatusResponse(generated_at=ops_events.iso_now(), services=services)


@router.get("/events", response_model=list[OpsEventResponse])
async def events(
    _: Annotated[str, Depends(_require_ops_access)],
    limit: int = Query(100, ge=1, le=500),
    level: EventLevel | None = Query(default=None),
    event_type: str | None = Query(default=None, alias="type"),
    correlation_id: str | None = Query(default=None),
) -> list[OpsEventResponse]:
    items = ops_events.ops_event_buffer.recent(
        limit=limit,
        level=level,
        event_type=event_type,
        correlation_id=correlation_id,
    )
    return [
        OpsEventResponse(
            **{
                **item,
                "message": ops_events.redact_text(item["message"]),
                "payload": ops_events.sanitize_value(item["payload"]),
            }
        )
        for item in items
    ]
