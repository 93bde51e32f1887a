from __future__ import annotations

import logging
from typing import Protocol

from ..attendance.model import AttendanceRecord

logger = logging.getLogger(__name__)


class AttendanceNotifier(Protocol):
    """Port onto the notification collaborator."""

    def attendance_recorded(self, record: AttendanceRecord) -> None:
        raise NotImplementedError


class LoggingNotifier(AttendanceNotifier):
    """Default notifier: log the event for the notification pipeline to pick up."""

    def attendance_recorded(self, record: AttendanceRecord) -> None:
        logger.info(
            "attendance_recorded student=%s course=%s material=%s date=%s status=%s",
            record.student_id,
            record.course_id,
            record.material_id,
            record.attendance_date,
            record.status.value,
        )


def notify_attendance_recorded(notifier: AttendanceNotifier | None, record: AttendanceRecord) -> None:
    """Fire-and-forget: a failing notifier never fails the attendance write."""
    if notifier is None:
        return
    try:
        notifier.attendance_recorded(record)
    except Exception:
        logger.warning("Notifier failed for attendance %s", record.attendance_id, exc_info=True)
