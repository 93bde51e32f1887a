from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller role as issued by the auth collaborator."""

    ADMIN = "admin"
    LECTURER = "lecturer"
    STUDENT = "student"


class AttendanceStatus(str, Enum):
    """Attendance status stored in the ledger."""

    PRESENT = "present"
    AUTO_PRESENT = "auto_present"
    LATE = "late"
    ABSENT = "absent"
    EXCUSED = "excused"

    @property
    def counts_as_present(self) -> bool:
        return self in PRESENT_STATUSES


PRESENT_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.AUTO_PRESENT, AttendanceStatus.LATE})


class AttendanceType(str, Enum):
    """Who produced a ledger record."""

    MANUAL = "manual"
    VIDEO_AUTO = "video_auto"


class TriggerState(str, Enum):
    """Per (student, material, date) attendance trigger state."""

    NOT_STARTED = "NOT_STARTED"
    WATCHING = "WATCHING"
    THRESHOLD_MET = "THRESHOLD_MET"
    RECORDED = "RECORDED"
