from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from ...materials.model import MaterialAttendanceConfig
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Threshold reached after the scheduled session ended."""

    def decide(self, *, now: datetime, material: MaterialAttendanceConfig) -> StatusDecision:
        note = None
        if material.session_end is not None:
            minutes = int((now - material.session_end).total_seconds() // 60)
            note = f"Video completed {minutes} min after session end"
        return StatusDecision(status=AttendanceStatus.LATE, note=note)
