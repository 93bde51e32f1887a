from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.validators import require_week
from ..enrollment.model import RosterStudent
from ..enrollment.repository import RosterRepository

logger = logging.getLogger(__name__)

ROSTER_EMPTY = "roster_empty"
UNENROLLED_ATTENDANCE = "unenrolled_attendance"


@dataclass(frozen=True)
class WeeklyReport:
    course_id: int
    week: Optional[int]
    students: list[dict]
    weekly_stats: list[dict]
    attendances_by_week: dict[int, list[dict]]
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "course_id": self.course_id,
            "week": self.week,
            "students": self.students,
            "weekly_stats": self.weekly_stats,
            "attendances_by_week": {str(w): days for w, days in self.attendances_by_week.items()},
            "warnings": self.warnings,
        }


def _pick_effective(records: Iterable[AttendanceRecord]) -> AttendanceRecord:
    """One record per student per date: a present-type record wins, earliest first."""
    return min(records, key=lambda r: (not r.is_present, r.submitted_at, r.material_id))


def _rate(present: int, total: int) -> float:
    return present / total if total else 0.0


class AttendanceReportService:
    """Combines the ledger with the course roster into present/absent breakdowns."""

    def __init__(self, attendance: AttendanceRepository, roster: RosterRepository):
        self._attendance = attendance
        self._roster = roster

    def _load_roster(self, course_id: int) -> list[RosterStudent]:
        roster = list(self._roster.list_students(int(course_id)) or [])
        if not roster:
            logger.warning("Course %s has no enrolled students, attendance rates reported as 0", course_id)
        return roster

    def _day_breakdown(
        self,
        attendance_date: date,
        week: int,
        records: Sequence[AttendanceRecord],
        roster: Sequence[RosterStudent],
    ) -> dict:
        by_student: dict[int, list[AttendanceRecord]] = {}
        for r in records:
            by_student.setdefault(r.student_id, []).append(r)
        effective = {sid: _pick_effective(rs) for sid, rs in by_student.items()}

        roster_by_id = {s.student_id: s for s in roster}
        present_ids = {sid for sid, r in effective.items() if r.is_present}

        present_students = []
        for sid in sorted(present_ids, key=lambda i: (roster_by_id[i].full_name if i in roster_by_id else "", i)):
            r = effective[sid]
            student = roster_by_id.get(sid)
            present_students.append(
                {
                    "student_id": sid,
                    "full_name": student.full_name if student else None,
                    "student_number": student.student_number if student else None,
                    "enrolled": student is not None,
                    "status": r.status.value,
                    "attendance_type": r.attendance_type.value,
                    "material_id": r.material_id,
                    "submitted_at": r.submitted_at.isoformat(timespec="seconds"),
                }
            )

        absent_students = []
        for student in roster:
            if student.student_id in present_ids:
                continue
            r = effective.get(student.student_id)
            absent_students.append(
                {
                    **student.to_dict(),
                    "status": r.status.value if r else None,
                    "attendance_type": r.attendance_type.value if r else None,
                }
            )

        present_enrolled = len(present_ids & roster_by_id.keys())
        return {
            "date": attendance_date.strftime("%Y-%m-%d"),
            "week": week,
            "total_students": len(roster),
            "present_count": present_enrolled,
            "absent_count": len(absent_students),
            "attendance_rate": _rate(present_enrolled, len(roster)),
            "present_students": present_students,
            "absent_students": absent_students,
        }

    def weekly_report(self, course_id: int, week: Optional[int] = None) -> WeeklyReport:
        if week is not None:
            week = require_week(week)

        roster = self._load_roster(course_id)
        records = self._attendance.list_by_course(int(course_id), week=week)

        grouped: dict[int, dict[date, list[AttendanceRecord]]] = {}
        for r in records:
            grouped.setdefault(r.week, {}).setdefault(r.attendance_date, []).append(r)

        warnings: list[str] = []
        if not roster:
            warnings.append(ROSTER_EMPTY)

        roster_ids = {s.student_id for s in roster}
        attendances_by_week: dict[int, list[dict]] = {}
        weekly_stats: list[dict] = []

        for wk in sorted(grouped):
            days = [
                self._day_breakdown(d, wk, grouped[wk][d], roster)
                for d in sorted(grouped[wk])
            ]
            attendances_by_week[wk] = days

            present_once = set()
            for d in grouped[wk].values():
                present_once.update(r.student_id for r in d if r.is_present and r.student_id in roster_ids)
            marks = sum(day["present_count"] for day in days)

            weekly_stats.append(
                {
                    "week": wk,
                    "meeting_count": len(days),
                    "total_students": len(roster),
                    "present_count": len(present_once),
                    "attendance_rate": _rate(marks, len(roster) * len(days)),
                }
            )

            if any(not s["enrolled"] for day in days for s in day["present_students"]):
                if UNENROLLED_ATTENDANCE not in warnings:
                    warnings.append(UNENROLLED_ATTENDANCE)

        return WeeklyReport(
            course_id=int(course_id),
            week=week,
            students=[s.to_dict() for s in roster],
            weekly_stats=weekly_stats,
            attendances_by_week=attendances_by_week,
            warnings=warnings,
        )

    def daily_report(self, course_id: int, attendance_date: date) -> dict:
        roster = self._load_roster(course_id)
        records = self._attendance.list_by_course_and_date(int(course_id), attendance_date)
        week = min((r.week for r in records), default=None)
        day = self._day_breakdown(attendance_date, week, records, roster)
        day["warnings"] = [] if roster else [ROSTER_EMPTY]
        return day

    @staticmethod
    def csv_rows(report: WeeklyReport) -> list[dict]:
        """Flatten a report to one row per student per meeting date."""
        rows: list[dict] = []
        for days in report.attendances_by_week.values():
            for day in days:
                for s in day["present_students"]:
                    rows.append(
                        {
                            "week": day["week"],
                            "date": day["date"],
                            "student_id": s["student_id"],
                            "full_name": s["full_name"] or "",
                            "student_number": s["student_number"] or "",
                            "status": s["status"],
                            "attendance_type": s["attendance_type"],
                            "submitted_at": s["submitted_at"],
                        }
                    )
                for s in day["absent_students"]:
                    rows.append(
                        {
                            "week": day["week"],
                            "date": day["date"],
                            "student_id": s["student_id"],
                            "full_name": s["full_name"],
                            "student_number": s["student_number"] or "",
                            "status": s["status"] or "absent",
                            "attendance_type": s["attendance_type"] or "",
                            "submitted_at": "",
                        }
                    )
        return rows
