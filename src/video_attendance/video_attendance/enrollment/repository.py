from __future__ import annotations

from typing import Protocol, Sequence

from .model import RosterStudent


class RosterRepository(Protocol):
    """Read-only port onto the enrollment collaborator."""

    def list_students(self, course_id: int) -> Sequence[RosterStudent]:
        raise NotImplementedError

    def is_course_lecturer(self, course_id: int, user_id: int) -> bool:
        raise NotImplementedError
