from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

import pytest

from src.video_attendance.video_attendance.attendance.model import AttendanceChange, AttendanceKey, AttendanceRecord
from src.video_attendance.video_attendance.container import TrackingSettings, wire
from src.video_attendance.video_attendance.core.enums import AttendanceStatus, AttendanceType, TriggerState
from src.video_attendance.video_attendance.core.exceptions import TransientStoreError
from src.video_attendance.video_attendance.enrollment.model import RosterStudent
from src.video_attendance.video_attendance.materials.model import MaterialAttendanceConfig


class InMemoryMaterials:
    def __init__(self, *materials: MaterialAttendanceConfig):
        self.materials = {m.material_id: m for m in materials}

    def add(self, material: MaterialAttendanceConfig) -> None:
        self.materials[material.material_id] = material

    def get_config(self, material_id: int) -> Optional[MaterialAttendanceConfig]:
        return self.materials.get(int(material_id))


class InMemoryRoster:
    def __init__(self, students_by_course=None, lecturers=None):
        self.students_by_course: dict[int, list[RosterStudent]] = students_by_course or {}
        self.lecturers: dict[int, int] = lecturers or {}

    def list_students(self, course_id: int):
        return list(self.students_by_course.get(int(course_id), []))

    def is_course_lecturer(self, course_id: int, user_id: int) -> bool:
        return self.lecturers.get(int(course_id)) == int(user_id)


class InMemorySessions:
    """Versioned session rows; ``update`` is an atomic compare-and-swap."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rows = {}
        self._next_id = 1
        self.update_calls = 0

    def get(self, key: AttendanceKey):
        with self._lock:
            return self._rows.get(key)

    def insert(self, session):
        with self._lock:
            if session.key in self._rows:
                return None
            row = replace(session, session_id=self._next_id)
            self._next_id += 1
            self._rows[row.key] = row
            return row

    def update(self, session, *, expected_version: int) -> bool:
        with self._lock:
            self.update_calls += 1
            current = self._rows.get(session.key)
            if current is None or current.version != expected_version:
                return False
            self._rows[session.key] = session
            return True

    def list_inactive(self, *, before: datetime, limit: int = 500):
        with self._lock:
            rows = [
                s for s in self._rows.values()
                if s.closed_at is None and s.last_activity is not None and s.last_activity < before
            ]
        rows.sort(key=lambda s: s.last_activity)
        return [s.key for s in rows[:limit]]

    def list_pending(self, *, limit: int = 500):
        with self._lock:
            rows = [s for s in self._rows.values() if s.state == TriggerState.THRESHOLD_MET]
        rows.sort(key=lambda s: s.last_activity)
        return [s.key for s in rows[:limit]]


class InMemoryAttendance:
    """Ledger keyed by (student, material, date) with a supersession audit list."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: dict[AttendanceKey, AttendanceRecord] = {}
        self._changes: list[AttendanceChange] = []
        self._next_id = 1
        self._next_change_id = 1
        self.fail_auto_writes = 0

    def get(self, key: AttendanceKey):
        with self._lock:
            return self._records.get(key)

    def insert_auto_if_absent(self, *, key, course_id, week, status, submitted_at, coverage_ratio=None, note=None):
        with self._lock:
            if self.fail_auto_writes:
                self.fail_auto_writes -= 1
                raise TransientStoreError("Lock wait timeout exceeded")
            if key in self._records:
                return False
            self._records[key] = AttendanceRecord(
                attendance_id=self._next_id,
                student_id=key.student_id,
                material_id=key.material_id,
                course_id=int(course_id),
                attendance_date=key.attendance_date,
                week=int(week),
                status=status,
                attendance_type=AttendanceType.VIDEO_AUTO,
                submitted_at=submitted_at,
                coverage_ratio=coverage_ratio,
                note=note,
            )
            self._next_id += 1
            return True

    def upsert_manual(self, *, key, course_id, week, status, submitted_at, recorded_by, note=None):
        with self._lock:
            previous = self._records.get(key)
            record = AttendanceRecord(
                attendance_id=previous.attendance_id if previous else self._next_id,
                student_id=key.student_id,
                material_id=key.material_id,
                course_id=int(course_id),
                attendance_date=key.attendance_date,
                week=int(week),
                status=status,
                attendance_type=AttendanceType.MANUAL,
                submitted_at=submitted_at,
                recorded_by=int(recorded_by),
                note=note,
            )
            self._records[key] = record
            if previous is None:
                self._next_id += 1
                return None

            change = AttendanceChange(
                change_id=self._next_change_id,
                attendance_id=previous.attendance_id,
                actor_id=int(recorded_by),
                old_status=previous.status,
                old_type=previous.attendance_type,
                old_submitted_at=previous.submitted_at,
                new_status=status,
                new_type=AttendanceType.MANUAL,
                changed_at=submitted_at,
                note=note,
            )
            self._next_change_id += 1
            self._changes.append(change)
            return change

    def list_by_course_and_date(self, course_id: int, attendance_date: date):
        with self._lock:
            rows = [r for r in self._records.values() if r.course_id == course_id and r.attendance_date == attendance_date]
        return sorted(rows, key=lambda r: (r.student_id, r.material_id))

    def list_by_course(self, course_id: int, *, week=None):
        with self._lock:
            rows = [
                r for r in self._records.values()
                if r.course_id == course_id and (week is None or r.week == week)
            ]
        return sorted(rows, key=lambda r: (r.week, r.attendance_date, r.student_id))

    def list_changes(self, key: AttendanceKey, *, limit: int):
        with self._lock:
            current = self._records.get(key)
            if current is None:
                return []
            rows = [c for c in self._changes if c.attendance_id == current.attendance_id]
        return sorted(rows, key=lambda c: (c.changed_at, c.change_id), reverse=True)[:limit]

    def add(self, record: AttendanceRecord) -> None:
        with self._lock:
            self._records[record.key] = record

    def all(self):
        with self._lock:
            return list(self._records.values())


class RecordingNotifier:
    def __init__(self):
        self._lock = threading.Lock()
        self.events = []

    def attendance_recorded(self, record) -> None:
        with self._lock:
            self.events.append(record)


LECTURE = MaterialAttendanceConfig(
    material_id=1,
    course_id=10,
    title="Week 1 lecture",
    duration_seconds=600,
    is_attendance_trigger=True,
    threshold_percent=80,
    week=1,
)

READING = MaterialAttendanceConfig(
    material_id=2,
    course_id=10,
    title="Week 1 intro clip",
    duration_seconds=300,
    is_attendance_trigger=False,
    week=1,
)

LIVE_SESSION = MaterialAttendanceConfig(
    material_id=3,
    course_id=10,
    title="Week 2 recorded session",
    duration_seconds=1000,
    is_attendance_trigger=True,
    threshold_percent=50,
    week=2,
    session_end=datetime(2026, 9, 14, 10, 0),
)


@pytest.fixture
def materials():
    return InMemoryMaterials(LECTURE, READING, LIVE_SESSION)


@pytest.fixture
def roster():
    students = [
        RosterStudent(student_id=sid, full_name=name, student_number=f"S{sid:04d}")
        for sid, name in [(101, "An"), (102, "Binh"), (103, "Chi"), (104, "Dung"), (105, "Hoa")]
    ]
    return InMemoryRoster({10: students}, lecturers={10: 7})


@pytest.fixture
def sessions():
    return InMemorySessions()


@pytest.fixture
def attendance():
    return InMemoryAttendance()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def container(materials, roster, sessions, attendance, notifier):
    return wire(
        materials_repo=materials,
        roster_repo=roster,
        sessions_repo=sessions,
        attendance_repo=attendance,
        settings=TrackingSettings(inactivity_timeout_seconds=300, late_grace_minutes=15),
        notifier=notifier,
    )


def make_record(
    attendance_id: int,
    student_id: int,
    *,
    day: date,
    status: AttendanceStatus = AttendanceStatus.AUTO_PRESENT,
    material_id: int = 1,
    course_id: int = 10,
    week: int = 1,
    attendance_type: AttendanceType = AttendanceType.VIDEO_AUTO,
    at: Optional[datetime] = None,
) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=attendance_id,
        student_id=student_id,
        material_id=material_id,
        course_id=course_id,
        attendance_date=day,
        week=week,
        status=status,
        attendance_type=attendance_type,
        submitted_at=at or datetime.combine(day, datetime.min.time()).replace(hour=9),
    )


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def lecture():
    return LECTURE


@pytest.fixture
def live_session():
    return LIVE_SESSION


@pytest.fixture
def reading():
    return READING
