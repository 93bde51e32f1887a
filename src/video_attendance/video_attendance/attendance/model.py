from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import NamedTuple, Optional

from ..core.enums import AttendanceStatus, AttendanceType


class AttendanceKey(NamedTuple):
    """Idempotency key: at most one ledger entry per (student, material, date)."""

    student_id: int
    material_id: int
    attendance_date: date


@dataclass(frozen=True)
class AttendanceRecord:
    """Ledger entry. Never deleted; a manual record supersedes it in place."""

    attendance_id: int
    student_id: int
    material_id: int
    course_id: int
    attendance_date: date
    week: int
    status: AttendanceStatus
    attendance_type: AttendanceType
    submitted_at: datetime
    recorded_by: Optional[int] = None
    coverage_ratio: Optional[float] = None
    note: Optional[str] = None

    @property
    def key(self) -> AttendanceKey:
        return AttendanceKey(self.student_id, self.material_id, self.attendance_date)

    @property
    def is_present(self) -> bool:
        return self.status.counts_as_present

    def to_dict(self) -> dict:
        return {
            "attendance_id": self.attendance_id,
            "student_id": self.student_id,
            "material_id": self.material_id,
            "course_id": self.course_id,
            "attendance_date": self.attendance_date.strftime("%Y-%m-%d"),
            "week": self.week,
            "status": self.status.value,
            "attendance_type": self.attendance_type.value,
            "submitted_at": self.submitted_at.isoformat(timespec="seconds"),
            "recorded_by": self.recorded_by,
            "coverage_ratio": self.coverage_ratio,
            "note": self.note,
        }


@dataclass(frozen=True)
class AttendanceChange:
    """Audit row written when a record is superseded."""

    change_id: int
    attendance_id: int
    actor_id: int
    old_status: AttendanceStatus
    old_type: AttendanceType
    old_submitted_at: datetime
    new_status: AttendanceStatus
    new_type: AttendanceType
    changed_at: datetime
    note: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "change_id": self.change_id,
            "attendance_id": self.attendance_id,
            "actor_id": self.actor_id,
            "old_status": self.old_status.value,
            "old_type": self.old_type.value,
            "old_submitted_at": self.old_submitted_at.isoformat(timespec="seconds"),
            "new_status": self.new_status.value,
            "new_type": self.new_type.value,
            "changed_at": self.changed_at.isoformat(timespec="seconds"),
            "note": self.note,
        }


@dataclass(frozen=True)
class RecordResult:
    created: bool
    record: Optional[AttendanceRecord]
    superseded: Optional[AttendanceChange] = None
