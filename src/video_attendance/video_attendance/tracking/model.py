from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..attendance.model import AttendanceKey
from ..core.enums import TriggerState
from .intervals import IntervalSet


@dataclass(frozen=True)
class WatchSession:
    """Persisted tracking unit for one (student, material, date).

    ``version`` is bumped on every write and compared on update, which is what
    keeps concurrent progress reports from overwriting each other.
    """

    session_id: Optional[int]
    student_id: int
    material_id: int
    watch_date: date
    intervals: IntervalSet = field(default_factory=IntervalSet)
    covered_seconds: float = 0.0
    coverage_ratio: float = 0.0
    state: TriggerState = TriggerState.NOT_STARTED
    version: int = 0
    last_activity: Optional[datetime] = None
    created_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    @classmethod
    def start(cls, key: AttendanceKey, now: datetime) -> "WatchSession":
        return cls(
            session_id=None,
            student_id=key.student_id,
            material_id=key.material_id,
            watch_date=key.attendance_date,
            last_activity=now,
            created_at=now,
        )

    @property
    def key(self) -> AttendanceKey:
        return AttendanceKey(self.student_id, self.material_id, self.watch_date)

    @property
    def is_closed(self) -> bool:
        return self.closed_at is not None

    @property
    def threshold_met(self) -> bool:
        return self.state in (TriggerState.THRESHOLD_MET, TriggerState.RECORDED)

    @property
    def attendance_recorded(self) -> bool:
        return self.state == TriggerState.RECORDED
