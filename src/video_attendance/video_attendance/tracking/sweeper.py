from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..attendance.model import AttendanceKey
from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_INACTIVITY_TIMEOUT_SECONDS
from ..core.enums import TriggerState
from ..core.exceptions import DomainError
from ..materials.repository import MaterialRepository
from .repository import WatchSessionRepository
from .store import IntervalMergeStore
from .trigger import AttendanceTriggerEvaluator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepSummary:
    scanned: int
    closed: int
    pending: int
    completed: int
    failed: int


class SessionSweeper:
    """Finalizes idle sessions and finishes stranded attendance writes.

    Pass one closes sessions that saw no progress for ``timeout_seconds``, using
    the same versioned close as the explicit end signal, so a report that lands
    during the sweep keeps its session open.

    Pass two picks up every session still in THRESHOLD_MET, open or closed, and
    retries its ledger write. A student who leaves right after crossing never
    sends another report, so this is the only place such a write can resume.
    """

    def __init__(
        self,
        sessions: WatchSessionRepository,
        store: IntervalMergeStore,
        materials: MaterialRepository,
        evaluator: AttendanceTriggerEvaluator,
        *,
        timeout_seconds: int = DEFAULT_INACTIVITY_TIMEOUT_SECONDS,
        batch_size: int = 500,
    ):
        self._sessions = sessions
        self._store = store
        self._materials = materials
        self._evaluator = evaluator
        self._timeout = timedelta(seconds=int(timeout_seconds))
        self._batch_size = int(batch_size)

    def sweep(self, now: Optional[datetime] = None) -> SweepSummary:
        now = now or now_local()
        cutoff = now - self._timeout

        keys = self._sessions.list_inactive(before=cutoff, limit=self._batch_size)
        closed = failed = 0
        for key in keys:
            try:
                if self._store.close(key, now, inactive_before=cutoff) is not None:
                    closed += 1
            except DomainError as e:
                failed += 1
                logger.warning("Closing %s failed: %s", key, e)

        pending = self._sessions.list_pending(limit=self._batch_size)
        completed = 0
        for key in pending:
            try:
                if self._complete(key, now):
                    completed += 1
            except DomainError as e:
                failed += 1
                logger.warning("Pending attendance for %s still not recorded: %s", key, e)

        summary = SweepSummary(
            scanned=len(keys), closed=closed, pending=len(pending), completed=completed, failed=failed
        )
        if summary.scanned or summary.pending:
            logger.info(
                "Session sweep: scanned=%d closed=%d pending=%d completed=%d failed=%d",
                summary.scanned,
                summary.closed,
                summary.pending,
                summary.completed,
                summary.failed,
            )
        return summary

    def _complete(self, key: AttendanceKey, now: datetime) -> bool:
        session = self._store.load(key)
        if session is None or session.state != TriggerState.THRESHOLD_MET:
            return False

        material = self._materials.get_config(key.material_id)
        if material is None:
            logger.warning("Material %s disappeared, pending attendance for %s left open", key.material_id, key)
            return False

        return self._evaluator.record(session, material, now=now).state == TriggerState.RECORDED
