from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_week
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_LEDGER_WRITE_RETRIES
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError, TransientStoreError, ValidationError
from ..materials.repository import MaterialRepository
from .model import AttendanceChange, AttendanceKey, AttendanceRecord, RecordResult
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

MANUAL_STATUSES = frozenset(
    {AttendanceStatus.PRESENT, AttendanceStatus.LATE, AttendanceStatus.ABSENT, AttendanceStatus.EXCUSED}
)


class AttendanceLedgerService:
    """Attendance ledger: one entry per key, automatic writes never overwrite."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        materials: MaterialRepository,
        *,
        manual_write_attempts: int = DEFAULT_LEDGER_WRITE_RETRIES,
    ):
        self._attendance = attendance
        self._materials = materials
        self._manual_write_attempts = max(int(manual_write_attempts), 1)

    def record_auto(
        self,
        key: AttendanceKey,
        status: AttendanceStatus,
        *,
        course_id: int,
        week: int,
        coverage_ratio: Optional[float] = None,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RecordResult:
        now = now or now_local()
        created = self._attendance.insert_auto_if_absent(
            key=key,
            course_id=course_id,
            week=week,
            status=status,
            submitted_at=now,
            coverage_ratio=coverage_ratio,
            note=note,
        )
        record = self._attendance.get(key)
        if created:
            logger.info("Recorded %s for student=%s material=%s date=%s", status.value, *key)
        else:
            logger.info(
                "Attendance already present for student=%s material=%s date=%s (%s), auto write skipped",
                *key,
                record.attendance_type.value if record else "unknown",
            )
        return RecordResult(created=created, record=record)

    def record_manual(
        self,
        key: AttendanceKey,
        status: AttendanceStatus | str,
        *,
        actor_id: int,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RecordResult:
        try:
            status = AttendanceStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown attendance status {status!r}") from None
        if status not in MANUAL_STATUSES:
            raise ValidationError(f"Status {status.value} cannot be set manually")

        material = self._materials.get_config(key.material_id)
        if not material:
            raise NotFoundError(f"Material {key.material_id} not found")

        note = note.strip() if note else None
        now = now or now_local()
        for attempt in range(1, self._manual_write_attempts + 1):
            try:
                change = self._attendance.upsert_manual(
                    key=key,
                    course_id=material.course_id,
                    week=material.week,
                    status=status,
                    submitted_at=now,
                    recorded_by=int(actor_id),
                    note=note,
                )
                break
            except TransientStoreError:
                if attempt == self._manual_write_attempts:
                    raise
                logger.warning("Manual attendance write raced, retrying (%d/%d)", attempt, self._manual_write_attempts)

        if change:
            logger.info(
                "Manual %s by actor=%s supersedes %s/%s for student=%s material=%s date=%s",
                status.value,
                actor_id,
                change.old_type.value,
                change.old_status.value,
                *key,
            )
        else:
            logger.info("Manual %s by actor=%s for student=%s material=%s date=%s", status.value, actor_id, *key)

        return RecordResult(created=change is None, record=self._attendance.get(key), superseded=change)

    def get(self, student_id: int, material_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        return self._attendance.get(AttendanceKey(int(student_id), int(material_id), attendance_date))

    def list_by_course_and_date(self, course_id: int, attendance_date: date) -> Sequence[AttendanceRecord]:
        return self._attendance.list_by_course_and_date(int(course_id), attendance_date)

    def list_by_course_and_week(self, course_id: int, week: int) -> Sequence[AttendanceRecord]:
        return self._attendance.list_by_course(int(course_id), week=require_week(week))

    def list_by_course(self, course_id: int) -> Sequence[AttendanceRecord]:
        return self._attendance.list_by_course(int(course_id))

    def history(
        self,
        student_id: int,
        material_id: int,
        attendance_date: date,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AttendanceChange]:
        return self._attendance.list_changes(
            AttendanceKey(int(student_id), int(material_id), attendance_date), limit=int(limit)
        )
