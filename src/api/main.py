from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware.request_context import RequestContextMiddleware
from src.api.routes import api_router
from src.config import get_settings
from src.db.connection import check_db_health, get_engine
from src.ops.events import configure_ops_event_logging

logger = logging.getLogger(__name__)

settings = get_settings()
configure_ops_event_logging(max_size=settings.ops_event_buffer_size)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "NTG Trips Club API starting (viability defaults %d interested / %d votes)",
        settings.default_min_interested,
        settings.default_min_votes,
        extra={
            "event_type": "api.startup",
            "ops_payload": {
                "admins": len(settings.admin_user_id_list()),
                "sweep_enabled": settings.viability_sweep_enabled,
            },
        },
    )
    yield
    # Only dispose an engine that was actually created.
    if get_engine.cache_info().currsize:
        await get_engine().dispose()


app = FastAPI(title="NTG Trips Club", version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origin_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health/db")
async def health_db() -> dict[str, str]:
    if await check_db_health():
        return {"status": "ok"}
    raise HTTPException(status_code=503, detail="database unavailable")
