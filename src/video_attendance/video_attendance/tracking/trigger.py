from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..attendance.factory import AttendanceStrategyFactory
from ..attendance.model import RecordResult
from ..attendance.service import AttendanceLedgerService
from ..core.constants import DEFAULT_LATE_GRACE_MINUTES, DEFAULT_LEDGER_WRITE_RETRIES
from ..core.enums import TriggerState
from ..core.exceptions import TransientStoreError
from ..materials.model import MaterialAttendanceConfig
from ..notifications.notifier import AttendanceNotifier, notify_attendance_recorded
from .coverage import crossed_threshold, threshold_fraction
from .model import WatchSession
from .store import IntervalMergeStore

logger = logging.getLogger(__name__)


class AttendanceTriggerEvaluator:
    """State machine NOT_STARTED -> WATCHING -> THRESHOLD_MET -> RECORDED.

    ``advance`` is pure and runs inside the store's compare-and-swap, so exactly
    one report observes the crossing. ``record`` performs the single ledger write
    for a session sitting in THRESHOLD_MET; the ledger's insert-if-absent makes a
    repeated or concurrent call a no-op.
    """

    def __init__(
        self,
        store: IntervalMergeStore,
        ledger: AttendanceLedgerService,
        *,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
        notifier: Optional[AttendanceNotifier] = None,
        grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
        write_retries: int = DEFAULT_LEDGER_WRITE_RETRIES,
    ):
        self._store = store
        self._ledger = ledger
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._notifier = notifier
        self._grace_minutes = int(grace_minutes)
        self._write_retries = max(int(write_retries), 1)

    @staticmethod
    def advance(
        session: WatchSession,
        previous_ratio: float,
        new_ratio: float,
        material: MaterialAttendanceConfig,
    ) -> TriggerState:
        state = session.state
        if state == TriggerState.NOT_STARTED:
            state = TriggerState.WATCHING

        if (
            state == TriggerState.WATCHING
            and material.is_attendance_trigger
            and crossed_threshold(previous_ratio, new_ratio, threshold_fraction(material.threshold_percent))
        ):
            state = TriggerState.THRESHOLD_MET

        return state

    def record(self, session: WatchSession, material: MaterialAttendanceConfig, *, now: datetime) -> WatchSession:
        if session.state != TriggerState.THRESHOLD_MET:
            return session

        strategy = self._factory.for_threshold(now=now, material=material, grace_minutes=self._grace_minutes)
        decision = strategy.decide(now=now, material=material)

        result = self._write_with_retries(session, material, decision.status, decision.note, now)
        if result.created and result.record is not None:
            notify_attendance_recorded(self._notifier, result.record)

        return self._store.transition(
            session.key, from_state=TriggerState.THRESHOLD_MET, to_state=TriggerState.RECORDED
        )

    def _write_with_retries(self, session, material, status, note, now) -> RecordResult:
        last_error: Optional[TransientStoreError] = None
        for attempt in range(1, self._write_retries + 1):
            try:
                return self._ledger.record_auto(
                    session.key,
                    status,
                    course_id=material.course_id,
                    week=material.week,
                    coverage_ratio=session.coverage_ratio,
                    note=note,
                    now=now,
                )
            except TransientStoreError as e:
                last_error = e
                logger.warning(
                    "Ledger write failed for student=%s material=%s date=%s (attempt %d/%d): %s",
                    *session.key,
                    attempt,
                    self._write_retries,
                    e,
                )

        raise TransientStoreError("Attendance could not be recorded yet, resend progress to retry") from last_error
