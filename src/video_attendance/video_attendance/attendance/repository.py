from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceChange, AttendanceKey, AttendanceRecord


class AttendanceRepository(Protocol):
    def get(self, key: AttendanceKey) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert_auto_if_absent(
        self,
        *,
        key: AttendanceKey,
        course_id: int,
        week: int,
        status: AttendanceStatus,
        submitted_at: datetime,
        coverage_ratio: Optional[float] = None,
        note: Optional[str] = None,
    ) -> bool:
        """Insert a video_auto record; False (not an error) when the key already has one."""

        raise NotImplementedError

    def upsert_manual(
        self,
        *,
        key: AttendanceKey,
        course_id: int,
        week: int,
        status: AttendanceStatus,
        submitted_at: datetime,
        recorded_by: int,
        note: Optional[str] = None,
    ) -> Optional[AttendanceChange]:
        """Write a manual record, superseding any existing one.

        Returns the audit row when an existing record was superseded.
        """

        raise NotImplementedError

    def list_by_course_and_date(self, course_id: int, attendance_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_by_course(self, course_id: int, *, week: Optional[int] = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_changes(self, key: AttendanceKey, *, limit: int) -> Sequence[AttendanceChange]:
        raise NotImplementedError
