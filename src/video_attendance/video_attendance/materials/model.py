from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.constants import DEFAULT_THRESHOLD_PERCENT


@dataclass(frozen=True)
class MaterialAttendanceConfig:
    """Attendance-relevant view of a course material.

    Owned by the course-material collaborator; this package only reads it.
    """

    material_id: int
    course_id: int
    title: str
    duration_seconds: float
    is_attendance_trigger: bool
    threshold_percent: float = DEFAULT_THRESHOLD_PERCENT
    week: int = 1
    session_end: Optional[datetime] = None

    @property
    def has_session_window(self) -> bool:
        return self.session_end is not None
