from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceStatus, AttendanceType
from ..core.exceptions import TransientStoreError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceChange, AttendanceKey, AttendanceRecord
from .repository import AttendanceRepository

_RECORD_COLUMNS = """
    attendance_id, student_id, material_id, course_id, attendance_date, week,
    status, attendance_type, submitted_at, recorded_by, coverage_ratio, note
"""


def _to_record(r: dict) -> AttendanceRecord:
    coverage = r.get("coverage_ratio")
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        student_id=int(r["student_id"]),
        material_id=int(r["material_id"]),
        course_id=int(r["course_id"]),
        attendance_date=r["attendance_date"],
        week=int(r["week"]),
        status=AttendanceStatus(r["status"]),
        attendance_type=AttendanceType(r["attendance_type"]),
        submitted_at=r["submitted_at"],
        recorded_by=int(r["recorded_by"]) if r.get("recorded_by") is not None else None,
        coverage_ratio=float(coverage) if coverage is not None else None,
        note=r.get("note"),
    )


def _to_change(r: dict) -> AttendanceChange:
    return AttendanceChange(
        change_id=int(r["change_id"]),
        attendance_id=int(r["attendance_id"]),
        actor_id=int(r["actor_id"]),
        old_status=AttendanceStatus(r["old_status"]),
        old_type=AttendanceType(r["old_type"]),
        old_submitted_at=r["old_submitted_at"],
        new_status=AttendanceStatus(r["new_status"]),
        new_type=AttendanceType(r["new_type"]),
        changed_at=r["changed_at"],
        note=r.get("note"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    """Ledger on ``attendance_records`` (unique per key) plus ``attendance_changes`` audit."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, key: AttendanceKey) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s AND material_id=%s AND attendance_date=%s
                """,
                (key.student_id, key.material_id, key.attendance_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            # No-op update on conflict: rowcount is 1 for an insert, 0 for an existing key.
            cur.execute(
                """
                INSERT INTO attendance_records(
                    student_id, material_id, course_id, attendance_date, week,
                    status, attendance_type, submitted_at, coverage_ratio, note
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE attendance_id=attendance_id
                """,
                (
                    key.student_id,
                    key.material_id,
                    int(course_id),
                    key.attendance_date,
                    int(week),
                    status.value,
                    AttendanceType.VIDEO_AUTO.value,
                    submitted_at,
                    coverage_ratio,
                    note,
                ),
            )
            return cur.rowcount == 1

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
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    SELECT {_RECORD_COLUMNS}
                    FROM attendance_records
                    WHERE student_id=%s AND material_id=%s AND attendance_date=%s
                    FOR UPDATE
                    """,
                    (key.student_id, key.material_id, key.attendance_date),
                )
                existing = fetchone(cur)

                if not existing:
                    cur.execute(
                        """
                        INSERT INTO attendance_records(
                            student_id, material_id, course_id, attendance_date, week,
                            status, attendance_type, submitted_at, recorded_by, note
                        )
                        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                        """,
                        (
                            key.student_id,
                            key.material_id,
                            int(course_id),
                            key.attendance_date,
                            int(week),
                            status.value,
                            AttendanceType.MANUAL.value,
                            submitted_at,
                            int(recorded_by),
                            note,
                        ),
                    )
                    return None

                previous = _to_record(existing)
                cur.execute(
                    """
                    INSERT INTO attendance_changes(
                        attendance_id, actor_id, old_status, old_type, old_submitted_at,
                        new_status, new_type, changed_at, note
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        previous.attendance_id,
                        int(recorded_by),
                        previous.status.value,
                        previous.attendance_type.value,
                        previous.submitted_at,
                        status.value,
                        AttendanceType.MANUAL.value,
                        submitted_at,
                        note,
                    ),
                )
                change_id = int(cur.lastrowid)
                cur.execute(
                    """
                    UPDATE attendance_records
                    SET status=%s, attendance_type=%s, submitted_at=%s, recorded_by=%s, note=%s
                    WHERE attendance_id=%s
                    """,
                    (
                        status.value,
                        AttendanceType.MANUAL.value,
                        submitted_at,
                        int(recorded_by),
                        note,
                        previous.attendance_id,
                    ),
                )
                return AttendanceChange(
                    change_id=change_id,
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
        except mysql.connector.IntegrityError as e:
            # An automatic insert won the gap between SELECT and INSERT.
            if is_duplicate_key(e):
                raise TransientStoreError("Attendance record changed concurrently") from e
            raise

    def list_by_course_and_date(self, course_id: int, attendance_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE course_id=%s AND attendance_date=%s
                ORDER BY student_id ASC, material_id ASC
                """,
                (int(course_id), attendance_date),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_by_course(self, course_id: int, *, week: Optional[int] = None) -> Sequence[AttendanceRecord]:
        clauses = ["course_id=%s"]
        params: list[object] = [int(course_id)]
        if week is not None:
            clauses.append("week=%s")
            params.append(int(week))

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE {where}
                ORDER BY week ASC, attendance_date ASC, student_id ASC
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_changes(self, key: AttendanceKey, *, limit: int) -> Sequence[AttendanceChange]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT c.change_id, c.attendance_id, c.actor_id, c.old_status, c.old_type,
                       c.old_submitted_at, c.new_status, c.new_type, c.changed_at, c.note
                FROM attendance_changes c
                JOIN attendance_records ar ON ar.attendance_id = c.attendance_id
                WHERE ar.student_id=%s AND ar.material_id=%s AND ar.attendance_date=%s
                ORDER BY c.changed_at DESC, c.change_id DESC
                LIMIT %s
                """,
                (key.student_id, key.material_id, key.attendance_date, int(limit)),
            )
            return [_to_change(r) for r in fetchall(cur)]
