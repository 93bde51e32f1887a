from __future__ import annotations

import json
from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..attendance.model import AttendanceKey
from ..core.enums import TriggerState
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .intervals import IntervalSet
from .model import WatchSession
from .repository import WatchSessionRepository

_SESSION_COLUMNS = """
    session_id, student_id, material_id, watch_date, intervals_json, covered_seconds,
    coverage_ratio, state, version, last_activity, created_at, closed_at
"""


def _to_session(r: dict) -> WatchSession:
    return WatchSession(
        session_id=int(r["session_id"]),
        student_id=int(r["student_id"]),
        material_id=int(r["material_id"]),
        watch_date=r["watch_date"],
        intervals=IntervalSet(json.loads(r.get("intervals_json") or "[]")),
        covered_seconds=float(r.get("covered_seconds") or 0),
        coverage_ratio=float(r.get("coverage_ratio") or 0),
        state=TriggerState(r["state"]),
        version=int(r["version"]),
        last_activity=r.get("last_activity"),
        created_at=r.get("created_at"),
        closed_at=r.get("closed_at"),
    )


class MySQLWatchSessionRepository(WatchSessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, key: AttendanceKey) -> Optional[WatchSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM watch_sessions
                WHERE student_id=%s AND material_id=%s AND watch_date=%s
                """,
                (key.student_id, key.material_id, key.attendance_date),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def insert(self, session: WatchSession) -> Optional[WatchSession]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO watch_sessions(
                        student_id, material_id, watch_date, intervals_json, covered_seconds,
                        coverage_ratio, state, version, last_activity, created_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        session.student_id,
                        session.material_id,
                        session.watch_date,
                        json.dumps(session.intervals.to_list()),
                        session.covered_seconds,
                        session.coverage_ratio,
                        session.state.value,
                        session.version,
                        session.last_activity,
                        session.created_at,
                    ),
                )
                session_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                return None
            raise

        return WatchSession(
            session_id=session_id,
            student_id=session.student_id,
            material_id=session.material_id,
            watch_date=session.watch_date,
            intervals=session.intervals,
            covered_seconds=session.covered_seconds,
            coverage_ratio=session.coverage_ratio,
            state=session.state,
            version=session.version,
            last_activity=session.last_activity,
            created_at=session.created_at,
            closed_at=session.closed_at,
        )

    def update(self, session: WatchSession, *, expected_version: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE watch_sessions
                SET intervals_json=%s, covered_seconds=%s, coverage_ratio=%s, state=%s,
                    version=%s, last_activity=%s, closed_at=%s
                WHERE student_id=%s AND material_id=%s AND watch_date=%s AND version=%s
                """,
                (
                    json.dumps(session.intervals.to_list()),
                    session.covered_seconds,
                    session.coverage_ratio,
                    session.state.value,
                    session.version,
                    session.last_activity,
                    session.closed_at,
                    session.student_id,
                    session.material_id,
                    session.watch_date,
                    int(expected_version),
                ),
            )
            return cur.rowcount == 1

    def list_inactive(self, *, before: datetime, limit: int = 500) -> Sequence[AttendanceKey]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id, material_id, watch_date
                FROM watch_sessions
                WHERE closed_at IS NULL AND last_activity < %s
                ORDER BY last_activity ASC
                LIMIT %s
                """,
                (before, int(limit)),
            )
            return [
                AttendanceKey(int(r["student_id"]), int(r["material_id"]), r["watch_date"])
                for r in fetchall(cur)
            ]

    def list_pending(self, *, limit: int = 500) -> Sequence[AttendanceKey]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id, material_id, watch_date
                FROM watch_sessions
                WHERE state=%s
                ORDER BY last_activity ASC
                LIMIT %s
                """,
                (TriggerState.THRESHOLD_MET.value, int(limit)),
            )
            return [
                AttendanceKey(int(r["student_id"]), int(r["material_id"]), r["watch_date"])
                for r in fetchall(cur)
            ]
