from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..common.validators import require_threshold_percent
from ..core.constants import DEFAULT_THRESHOLD_PERCENT
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import MaterialAttendanceConfig
from .repository import MaterialRepository


class MySQLMaterialRepository(MaterialRepository):
    """Reads material attendance settings from the course-material tables."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_config(self, material_id: int) -> Optional[MaterialAttendanceConfig]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT material_id, course_id, title, duration_seconds, is_attendance_trigger,
                       attendance_threshold, week, session_end
                FROM course_materials
                WHERE material_id=%s
                """,
                (int(material_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return MaterialAttendanceConfig(
                material_id=int(r["material_id"]),
                course_id=int(r["course_id"]),
                title=r["title"],
                duration_seconds=float(r.get("duration_seconds") or 0),
                is_attendance_trigger=bool(r.get("is_attendance_trigger")),
                threshold_percent=require_threshold_percent(r.get("attendance_threshold") or DEFAULT_THRESHOLD_PERCENT),
                week=int(r.get("week") or 1),
                session_end=_as_datetime(r.get("session_end")),
            )


def _as_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
