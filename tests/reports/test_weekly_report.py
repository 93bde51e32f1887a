from __future__ import annotations

from datetime import date

import pytest

from src.video_attendance.video_attendance.core.enums import AttendanceStatus, AttendanceType
from src.video_attendance.video_attendance.core.exceptions import ValidationError
from src.video_attendance.video_attendance.reports.service import (
    ROSTER_EMPTY,
    UNENROLLED_ATTENDANCE,
    AttendanceReportService,
)

DAY1 = date(2026, 9, 14)
DAY2 = date(2026, 9, 16)


@pytest.fixture
def service(attendance, roster):
    return AttendanceReportService(attendance, roster)


def test_three_of_five_present_gives_two_absent(service, attendance, record_factory):
    for i, sid in enumerate([101, 103, 105], start=1):
        attendance.add(record_factory(i, sid, day=DAY1))

    report = service.weekly_report(10, 1)

    day = report.attendances_by_week[1][0]
    assert day["date"] == "2026-09-14"
    assert [s["student_id"] for s in day["present_students"]] == [101, 103, 105]
    assert [s["student_id"] for s in day["absent_students"]] == [102, 104]
    assert day["attendance_rate"] == pytest.approx(0.6)
    assert report.weekly_stats == [
        {"week": 1, "meeting_count": 1, "total_students": 5, "present_count": 3, "attendance_rate": pytest.approx(0.6)}
    ]
    assert report.warnings == []


def test_week_with_two_meeting_dates(service, attendance, record_factory):
    n = 0
    for sid in [101, 102, 103]:
        n += 1
        attendance.add(record_factory(n, sid, day=DAY1))
    for sid in [101, 102, 103, 104, 105]:
        n += 1
        attendance.add(record_factory(n, sid, day=DAY2))

    report = service.weekly_report(10)

    stats = report.weekly_stats[0]
    assert stats["meeting_count"] == 2
    assert stats["present_count"] == 5
    assert stats["attendance_rate"] == pytest.approx(8 / 10)
    assert [d["date"] for d in report.attendances_by_week[1]] == ["2026-09-14", "2026-09-16"]


def test_manual_absent_counts_as_absent(service, attendance, record_factory):
    attendance.add(record_factory(1, 101, day=DAY1))
    attendance.add(
        record_factory(
            2, 102, day=DAY1, status=AttendanceStatus.ABSENT, attendance_type=AttendanceType.MANUAL
        )
    )

    day = service.weekly_report(10, 1).attendances_by_week[1][0]

    assert [s["student_id"] for s in day["present_students"]] == [101]
    absent = {s["student_id"]: s for s in day["absent_students"]}
    assert absent[102]["status"] == "absent"
    assert absent[102]["attendance_type"] == "manual"
    assert absent[103]["status"] is None


def test_present_record_wins_over_other_material_same_day(service, attendance, record_factory):
    attendance.add(record_factory(1, 101, day=DAY1, material_id=1, status=AttendanceStatus.ABSENT))
    attendance.add(record_factory(2, 101, day=DAY1, material_id=2, status=AttendanceStatus.LATE))

    day = service.weekly_report(10, 1).attendances_by_week[1][0]

    assert day["present_count"] == 1
    assert day["present_students"][0]["status"] == "late"


def test_unenrolled_attendance_is_flagged_and_not_counted(service, attendance, record_factory):
    attendance.add(record_factory(1, 101, day=DAY1))
    attendance.add(record_factory(2, 999, day=DAY1))

    report = service.weekly_report(10, 1)

    day = report.attendances_by_week[1][0]
    assert UNENROLLED_ATTENDANCE in report.warnings
    assert {s["student_id"]: s["enrolled"] for s in day["present_students"]} == {101: True, 999: False}
    assert day["present_count"] == 1
    assert day["attendance_rate"] == pytest.approx(0.2)


def test_empty_roster_reports_zero_rate_with_warning(service, attendance, record_factory):
    attendance.add(record_factory(1, 101, day=DAY1, course_id=20))

    report = service.weekly_report(20, 1)

    assert report.students == []
    assert ROSTER_EMPTY in report.warnings
    assert report.weekly_stats[0]["attendance_rate"] == 0.0
    assert report.attendances_by_week[1][0]["attendance_rate"] == 0.0


def test_report_without_records_lists_roster_only(service):
    report = service.weekly_report(10, 3)

    assert len(report.students) == 5
    assert report.weekly_stats == []
    assert report.to_dict()["attendances_by_week"] == {}


@pytest.mark.parametrize("week", [0, 17, "abc"])
def test_week_out_of_range_is_rejected(service, week):
    with pytest.raises(ValidationError):
        service.weekly_report(10, week)


def test_week_filter_only_reads_that_week(service, attendance, record_factory):
    attendance.add(record_factory(1, 101, day=DAY1, week=1))
    attendance.add(record_factory(2, 101, day=date(2026, 9, 21), week=2))

    report = service.weekly_report(10, 2)

    assert list(report.attendances_by_week) == [2]
    assert report.to_dict()["attendances_by_week"].keys() == {"2"}


def test_daily_report(service, attendance, record_factory):
    attendance.add(record_factory(1, 104, day=DAY2))

    day = service.daily_report(10, DAY2)

    assert day["present_count"] == 1
    assert day["absent_count"] == 4
    assert day["week"] == 1
    assert day["warnings"] == []


def test_csv_rows_one_per_roster_student_per_date(service, attendance, record_factory):
    attendance.add(record_factory(1, 101, day=DAY1))
    attendance.add(record_factory(2, 102, day=DAY2))

    rows = AttendanceReportService.csv_rows(service.weekly_report(10, 1))

    assert len(rows) == 10
    first_day = [r for r in rows if r["date"] == "2026-09-14"]
    assert {r["student_id"]: r["status"] for r in first_day} == {
        101: "auto_present",
        102: "absent",
        103: "absent",
        104: "absent",
        105: "absent",
    }
