from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from ...materials.model import MaterialAttendanceConfig
from .base import AttendanceStrategy, StatusDecision


class OnTimeStrategy(AttendanceStrategy):
    """Threshold reached inside the session window (or the material has none)."""

    def decide(self, *, now: datetime, material: MaterialAttendanceConfig) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.AUTO_PRESENT)
