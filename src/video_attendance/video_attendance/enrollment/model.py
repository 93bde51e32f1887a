from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RosterStudent:
    """One enrolled student as seen by attendance reporting."""

    student_id: int
    full_name: str
    student_number: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "full_name": self.full_name,
            "student_number": self.student_number,
        }
