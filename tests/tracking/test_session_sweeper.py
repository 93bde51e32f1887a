from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from src.video_attendance.video_attendance.attendance.model import AttendanceKey
from src.video_attendance.video_attendance.core.enums import TriggerState
from src.video_attendance.video_attendance.core.exceptions import ConcurrencyConflictError, TransientStoreError
from src.video_attendance.video_attendance.tracking.intervals import WatchInterval
from src.video_attendance.video_attendance.tracking.store import IntervalMergeStore

NOW = datetime(2026, 9, 14, 9, 0)


def report(container, student_id, start, end, *, now=NOW):
    return container.progress_service.record_progress(
        student_id=student_id, material_id=1, watched_from=start, watched_to=end, now=now
    )


def test_sweep_closes_only_inactive_sessions(container, sessions):
    report(container, 101, 0, 100, now=NOW)
    report(container, 102, 0, 100, now=NOW + timedelta(minutes=8))

    summary = container.session_sweeper.sweep(NOW + timedelta(minutes=10))

    assert summary.scanned == 1
    assert summary.closed == 1
    assert sessions.get(AttendanceKey(101, 1, date(2026, 9, 14))).is_closed
    assert not sessions.get(AttendanceKey(102, 1, date(2026, 9, 14))).is_closed


def test_sweep_completes_pending_ledger_write(container, attendance, notifier):
    attendance.fail_auto_writes = 3
    with pytest.raises(TransientStoreError):
        report(container, 101, 0, 600)

    summary = container.session_sweeper.sweep(NOW + timedelta(minutes=6))

    assert summary.closed == 1
    assert summary.completed == 1
    key = AttendanceKey(101, 1, date(2026, 9, 14))
    assert attendance.get(key) is not None
    assert container.merge_store.load(key).state == TriggerState.RECORDED
    assert len(notifier.events) == 1


def test_sweep_is_a_noop_when_nothing_is_idle(container):
    report(container, 101, 0, 100)

    summary = container.session_sweeper.sweep(NOW + timedelta(seconds=30))

    assert (summary.scanned, summary.closed, summary.pending, summary.completed, summary.failed) == (0, 0, 0, 0, 0)


def test_close_skips_session_with_activity_after_cutoff(container):
    report(container, 101, 0, 100, now=NOW + timedelta(minutes=3))
    key = AttendanceKey(101, 1, date(2026, 9, 14))

    closed = container.merge_store.close(key, NOW + timedelta(minutes=5), inactive_before=NOW)

    assert closed is None
    assert not container.merge_store.load(key).is_closed


class AlwaysLosingSessions:
    """Every compare-and-swap loses, as if another writer always got there first."""

    def __init__(self, inner):
        self._inner = inner

    def get(self, key):
        return self._inner.get(key)

    def insert(self, session):
        return self._inner.insert(session)

    def update(self, session, *, expected_version):
        return False

    def list_inactive(self, *, before, limit=500):
        return self._inner.list_inactive(before=before, limit=limit)

    def list_pending(self, *, limit=500):
        return self._inner.list_pending(limit=limit)


def test_store_gives_up_after_bounded_conflicts(sessions):
    store = IntervalMergeStore(AlwaysLosingSessions(sessions), cas_attempts=3)
    key = AttendanceKey(101, 1, date(2026, 9, 14))

    with pytest.raises(ConcurrencyConflictError) as exc:
        store.report(key, WatchInterval(0, 10), NOW, duration=600)

    assert exc.value.retryable


def test_later_sweep_retries_a_write_the_sweep_itself_failed(container, attendance, notifier):
    key = AttendanceKey(101, 1, date(2026, 9, 14))
    # Three failures for the ingest attempt, three more for the first sweep.
    attendance.fail_auto_writes = 6
    with pytest.raises(TransientStoreError):
        report(container, 101, 0, 600)

    first = container.session_sweeper.sweep(NOW + timedelta(minutes=6))
    assert (first.closed, first.pending, first.completed, first.failed) == (1, 1, 0, 1)
    assert container.merge_store.load(key).state == TriggerState.THRESHOLD_MET
    assert attendance.get(key) is None

    second = container.session_sweeper.sweep(NOW + timedelta(minutes=7))

    assert (second.scanned, second.pending, second.completed, second.failed) == (0, 1, 1, 0)
    assert attendance.get(key) is not None
    assert container.merge_store.load(key).state == TriggerState.RECORDED
    assert len(notifier.events) == 1

    third = container.session_sweeper.sweep(NOW + timedelta(minutes=8))
    assert third.pending == 0


def test_sweep_completes_write_left_behind_by_end_signal(container, attendance):
    key = AttendanceKey(101, 1, date(2026, 9, 14))
    attendance.fail_auto_writes = 6
    with pytest.raises(TransientStoreError):
        report(container, 101, 0, 600)

    with pytest.raises(TransientStoreError):
        container.progress_service.end_session(student_id=101, material_id=1, now=NOW + timedelta(seconds=20))

    assert container.merge_store.load(key).is_closed
    summary = container.session_sweeper.sweep(NOW + timedelta(seconds=30))

    assert summary.scanned == 0
    assert summary.completed == 1
    assert attendance.get(key) is not None
