from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...materials.model import MaterialAttendanceConfig


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how an automatic attendance status is decided."""

    @abstractmethod
    def decide(self, *, now: datetime, material: MaterialAttendanceConfig) -> StatusDecision:
        raise NotImplementedError
