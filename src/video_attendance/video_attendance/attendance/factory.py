from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from ..materials.model import MaterialAttendanceConfig
from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose the status strategy for a threshold crossing."""

    def for_threshold(self, *, now: datetime, material: MaterialAttendanceConfig, grace_minutes: int) -> AttendanceStrategy:
        if not material.has_session_window:
            return OnTimeStrategy()

        if now <= material.session_end + timedelta(minutes=grace_minutes):
            return OnTimeStrategy()
        return LateStrategy()
