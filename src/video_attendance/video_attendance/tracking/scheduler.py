from __future__ import annotations

import atexit
import logging

from apscheduler.schedulers.background import BackgroundScheduler

from ..core.constants import DEFAULT_SWEEP_INTERVAL_SECONDS
from .sweeper import SessionSweeper

logger = logging.getLogger(__name__)


def start_session_sweep(sweeper: SessionSweeper, *, interval_seconds: int = DEFAULT_SWEEP_INTERVAL_SECONDS) -> BackgroundScheduler:
    """Run the inactivity sweep in a background thread every ``interval_seconds``."""
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        func=sweeper.sweep,
        trigger="interval",
        seconds=int(interval_seconds),
        id="close_inactive_watch_sessions",
        name="Close inactive watch sessions",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("Session sweep scheduled every %ss", interval_seconds)

    def _shutdown():
        if scheduler.running:
            scheduler.shutdown(wait=False)

    atexit.register(_shutdown)
    return scheduler
