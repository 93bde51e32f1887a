from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..attendance.model import AttendanceKey
from ..common.datetime_utils import now_local
from ..core.enums import TriggerState
from ..core.exceptions import NotFoundError
from ..materials.model import MaterialAttendanceConfig
from ..materials.repository import MaterialRepository
from .intervals import WatchInterval
from .model import WatchSession
from .store import IntervalMergeStore
from .trigger import AttendanceTriggerEvaluator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressResult:
    material_id: int
    watch_date: date
    coverage_ratio: float
    covered_seconds: float
    duration_seconds: float
    threshold_percent: float
    is_attendance_trigger: bool
    threshold_met: bool
    attendance_recorded: bool
    state: TriggerState
    intervals: list

    @classmethod
    def from_session(cls, session: Optional[WatchSession], material: MaterialAttendanceConfig, watch_date: date):
        return cls(
            material_id=material.material_id,
            watch_date=watch_date,
            coverage_ratio=session.coverage_ratio if session else 0.0,
            covered_seconds=session.covered_seconds if session else 0.0,
            duration_seconds=material.duration_seconds,
            threshold_percent=material.threshold_percent,
            is_attendance_trigger=material.is_attendance_trigger,
            threshold_met=session.threshold_met if session else False,
            attendance_recorded=session.attendance_recorded if session else False,
            state=session.state if session else TriggerState.NOT_STARTED,
            intervals=session.intervals.to_list() if session else [],
        )

    def to_dict(self) -> dict:
        return {
            "material_id": self.material_id,
            "watch_date": self.watch_date.strftime("%Y-%m-%d"),
            "coverage_ratio": round(self.coverage_ratio, 6),
            "covered_seconds": round(self.covered_seconds, 3),
            "duration_seconds": self.duration_seconds,
            "threshold_percent": self.threshold_percent,
            "is_attendance_trigger": self.is_attendance_trigger,
            "threshold_met": self.threshold_met,
            "attendance_recorded": self.attendance_recorded,
            "state": self.state.value,
            "intervals": self.intervals,
        }


class ProgressService:
    """Ingestion use case: one playback progress report from the video player."""

    def __init__(
        self,
        materials: MaterialRepository,
        store: IntervalMergeStore,
        evaluator: AttendanceTriggerEvaluator,
    ):
        self._materials = materials
        self._store = store
        self._evaluator = evaluator

    def _material(self, material_id: int) -> MaterialAttendanceConfig:
        material = self._materials.get_config(int(material_id))
        if not material:
            raise NotFoundError(f"Material {material_id} not found")
        return material

    def record_progress(
        self,
        *,
        student_id: int,
        material_id: int,
        watched_from,
        watched_to,
        client_timestamp: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ProgressResult:
        # Server time decides the tracking date and lateness; the client clock is only logged.
        now = now or now_local()
        material = self._material(material_id)
        interval = WatchInterval.validated(watched_from, watched_to, duration=material.duration_seconds)
        key = AttendanceKey(int(student_id), material.material_id, now.date())

        logger.debug(
            "Progress student=%s material=%s [%.1f, %.1f) client_ts=%s",
            key.student_id,
            key.material_id,
            interval.start,
            interval.end,
            client_timestamp,
        )

        outcome = self._store.report(
            key,
            interval,
            now,
            duration=material.duration_seconds,
            advance=lambda candidate, previous_ratio, new_ratio: self._evaluator.advance(
                candidate, previous_ratio, new_ratio, material
            ),
        )

        if not outcome.intervals_changed:
            logger.debug("Report for %s already covered, activity refreshed only", key)

        session = outcome.session
        if session.state == TriggerState.THRESHOLD_MET:
            session = self._evaluator.record(session, material, now=now)

        return ProgressResult.from_session(session, material, key.attendance_date)

    def get_progress(
        self,
        *,
        student_id: int,
        material_id: int,
        watch_date: Optional[date] = None,
    ) -> ProgressResult:
        material = self._material(material_id)
        watch_date = watch_date or now_local().date()
        session = self._store.load(AttendanceKey(int(student_id), material.material_id, watch_date))
        return ProgressResult.from_session(session, material, watch_date)

    def end_session(
        self,
        *,
        student_id: int,
        material_id: int,
        now: Optional[datetime] = None,
    ) -> ProgressResult:
        """Explicit end signal from the player (tab closed, video ended)."""
        now = now or now_local()
        material = self._material(material_id)
        key = AttendanceKey(int(student_id), material.material_id, now.date())

        session = self._store.close(key, now) or self._store.load(key)
        if session is not None and session.state == TriggerState.THRESHOLD_MET:
            session = self._evaluator.record(session, material, now=now)

        return ProgressResult.from_session(session, material, key.attendance_date)
