"""Alembic environment for the club database (async engine, Postgres)."""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from src.config import get_settings
from src.db.connection import Base
from src.db.heartbeat import SchedulerHeartbeat  # noqa: F401
from src.models import CreditTransaction, Trip, TripInterest, TripVote, UserProfile  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    # Programmatic callers pass config.attributes["db_url"]; the CLI uses `-x db_url=...`.
    override = config.attributes.get("db_url") or context.get_x_argument(as_dictionary=True).get("db_url")
    return override or get_settings().database_url


def _configure(**kwargs: object) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure(connection=connection)


async def _run_async(url: str) -> None:
    engine = create_async_engine(url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(_run_async(_database_url()))
