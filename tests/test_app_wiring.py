from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.video_attendance.video_attendance.common.validators import require_threshold_percent
from src.video_attendance.video_attendance.core.capabilities import Capability, has_capability
from src.video_attendance.video_attendance.core.enums import Role
from src.video_attendance.video_attendance.core.exceptions import ValidationError
from src.video_attendance.video_attendance.main import create_app
from src.video_attendance.video_attendance.notifications.notifier import notify_attendance_recorded
from src.video_attendance.video_attendance.tracking.scheduler import start_session_sweep


def test_create_app_registers_routes_without_touching_the_database(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")

    app = create_app()

    rules = {r.rule for r in app.url_map.iter_rules()}
    assert "/api/materials/<int:material_id>/progress" in rules
    assert "/api/courses/<int:course_id>/attendance/manual" in rules
    assert "/api/courses/<int:course_id>/attendance.csv" in rules
    assert "video_attendance" in app.extensions


def test_capability_table():
    assert has_capability(Role.STUDENT, Capability.TRACK_PROGRESS)
    assert not has_capability("student", Capability.VIEW_REPORTS)
    assert has_capability("lecturer", Capability.OVERRIDE_ATTENDANCE)
    assert has_capability(Role.ADMIN, Capability.VIEW_REPORTS)
    assert not has_capability("guest", Capability.VIEW_REPORTS)
    assert not has_capability(None, Capability.TRACK_PROGRESS)


class BrokenNotifier:
    def attendance_recorded(self, record):
        raise RuntimeError("smtp down")


def test_failing_notifier_does_not_raise(record_factory, caplog):
    record = record_factory(1, 101, day=date(2026, 9, 14))

    notify_attendance_recorded(BrokenNotifier(), record)

    assert "Notifier failed" in caplog.text


def test_session_sweep_job_is_scheduled(container):
    scheduler = start_session_sweep(container.session_sweeper, interval_seconds=3600)
    try:
        job = scheduler.get_job("close_inactive_watch_sessions")
        assert job is not None
        assert job.max_instances == 1
    finally:
        scheduler.shutdown(wait=False)


def test_sweeper_runs_with_default_clock(container):
    assert container.session_sweeper.sweep().scanned == 0


@pytest.mark.parametrize("value", [0, 101, "x", None])
def test_threshold_percent_outside_range_is_rejected(value):
    with pytest.raises(ValidationError):
        require_threshold_percent(value)


def test_threshold_percent_accepts_decimal_column_values():
    assert require_threshold_percent(Decimal("75.00")) == 75.0
