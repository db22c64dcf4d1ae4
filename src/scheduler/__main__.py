from __future__ import annotations

import asyncio
import logging

from src.config import get_settings
from src.db.connection import get_sessionmaker
from src.scheduler.main import scheduler_loop

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    if not settings.viability_sweep_enabled:
        logger.warning("VIABILITY_SWEEP_ENABLED is false; scheduler not started")
        return
    logger.info(
        "Starting viability sweep scheduler (every %.1f minutes)",
        settings.viability_sweep_interval_minutes,
    )
    session_factory = get_sessionmaker()
    asyncio.run(
        scheduler_loop(
            session_factory=session_factory,
            interval_minutes=settings.viability_sweep_interval_minutes,
        )
    )


main()
