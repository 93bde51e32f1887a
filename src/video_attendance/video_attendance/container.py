from __future__ import annotations

from dataclasses import dataclass

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceLedgerService
from .core.constants import (
    DEFAULT_INACTIVITY_TIMEOUT_SECONDS,
    DEFAULT_LATE_GRACE_MINUTES,
    DEFAULT_LEDGER_WRITE_RETRIES,
    DEFAULT_SESSION_CAS_ATTEMPTS,
)
from .database.connection import DBConfig, DatabaseConnection
from .enrollment.mysql_roster_repository import MySQLRosterRepository
from .enrollment.repository import RosterRepository
from .materials.mysql_material_repository import MySQLMaterialRepository
from .materials.repository import MaterialRepository
from .notifications.notifier import AttendanceNotifier, LoggingNotifier
from .reports.service import AttendanceReportService
from .tracking.mysql_watch_session_repository import MySQLWatchSessionRepository
from .tracking.repository import WatchSessionRepository
from .tracking.service import ProgressService
from .tracking.store import IntervalMergeStore
from .tracking.sweeper import SessionSweeper
from .tracking.trigger import AttendanceTriggerEvaluator


@dataclass(frozen=True)
class TrackingSettings:
    inactivity_timeout_seconds: int = DEFAULT_INACTIVITY_TIMEOUT_SECONDS
    late_grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES
    ledger_write_retries: int = DEFAULT_LEDGER_WRITE_RETRIES
    session_cas_attempts: int = DEFAULT_SESSION_CAS_ATTEMPTS


@dataclass(frozen=True)
class Container:
    materials_repo: MaterialRepository
    roster_repo: RosterRepository
    sessions_repo: WatchSessionRepository
    attendance_repo: AttendanceRepository

    merge_store: IntervalMergeStore
    ledger_service: AttendanceLedgerService
    trigger_evaluator: AttendanceTriggerEvaluator
    progress_service: ProgressService
    report_service: AttendanceReportService
    session_sweeper: SessionSweeper


def wire(
    *,
    materials_repo: MaterialRepository,
    roster_repo: RosterRepository,
    sessions_repo: WatchSessionRepository,
    attendance_repo: AttendanceRepository,
    settings: TrackingSettings | None = None,
    notifier: AttendanceNotifier | None = None,
) -> Container:
    """Assemble services over any set of repositories (MySQL in production)."""
    settings = settings or TrackingSettings()

    merge_store = IntervalMergeStore(sessions_repo, cas_attempts=settings.session_cas_attempts)
    ledger_service = AttendanceLedgerService(
        attendance_repo,
        materials_repo,
        manual_write_attempts=settings.ledger_write_retries,
    )
    trigger_evaluator = AttendanceTriggerEvaluator(
        merge_store,
        ledger_service,
        strategy_factory=AttendanceStrategyFactory(),
        notifier=notifier,
        grace_minutes=settings.late_grace_minutes,
        write_retries=settings.ledger_write_retries,
    )
    progress_service = ProgressService(materials_repo, merge_store, trigger_evaluator)
    report_service = AttendanceReportService(attendance_repo, roster_repo)
    session_sweeper = SessionSweeper(
        sessions_repo,
        merge_store,
        materials_repo,
        trigger_evaluator,
        timeout_seconds=settings.inactivity_timeout_seconds,
    )

    return Container(
        materials_repo=materials_repo,
        roster_repo=roster_repo,
        sessions_repo=sessions_repo,
        attendance_repo=attendance_repo,
        merge_store=merge_store,
        ledger_service=ledger_service,
        trigger_evaluator=trigger_evaluator,
        progress_service=progress_service,
        report_service=report_service,
        session_sweeper=session_sweeper,
    )


def build_container(*, db_config: dict, settings: TrackingSettings | None = None, pool_size: int = 5) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config, pool_size=pool_size))

    return wire(
        materials_repo=MySQLMaterialRepository(conn),
        roster_repo=MySQLRosterRepository(conn),
        sessions_repo=MySQLWatchSessionRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        settings=settings,
        notifier=LoggingNotifier(),
    )
