from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..attendance.model import AttendanceKey
from .model import WatchSession


class WatchSessionRepository(Protocol):
    """Versioned storage of watch sessions keyed by (student, material, date)."""

    def get(self, key: AttendanceKey) -> Optional[WatchSession]:
        raise NotImplementedError

    def insert(self, session: WatchSession) -> Optional[WatchSession]:
        """Insert a fresh session; return None if the key already exists."""

        raise NotImplementedError

    def update(self, session: WatchSession, *, expected_version: int) -> bool:
        """Compare-and-swap: write ``session`` only if the stored version still matches."""

        raise NotImplementedError

    def list_inactive(self, *, before: datetime, limit: int = 500) -> Sequence[AttendanceKey]:
        """Keys of open sessions whose last activity is older than ``before``."""

        raise NotImplementedError

    def list_pending(self, *, limit: int = 500) -> Sequence[AttendanceKey]:
        """Keys of sessions, open or closed, still waiting in THRESHOLD_MET for their ledger write."""

        raise NotImplementedError
