from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import RosterStudent
from .repository import RosterRepository


class MySQLRosterRepository(RosterRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_students(self, course_id: int) -> Sequence[RosterStudent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.user_id, u.full_name, u.student_number
                FROM course_enrollments ce
                JOIN users u ON u.user_id = ce.student_id
                WHERE ce.course_id=%s AND ce.status='active'
                ORDER BY u.full_name ASC, u.user_id ASC
                """,
                (int(course_id),),
            )
            return [
                RosterStudent(
                    student_id=int(r["user_id"]),
                    full_name=r["full_name"],
                    student_number=r.get("student_number"),
                )
                for r in fetchall(cur)
            ]

    def is_course_lecturer(self, course_id: int, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS ok FROM courses WHERE course_id=%s AND lecturer_id=%s",
                (int(course_id), int(user_id)),
            )
            return fetchone(cur) is not None
