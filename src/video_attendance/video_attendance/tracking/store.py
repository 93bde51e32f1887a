from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

from ..attendance.model import AttendanceKey
from ..core.constants import DEFAULT_SESSION_CAS_ATTEMPTS
from ..core.enums import TriggerState
from ..core.exceptions import ConcurrencyConflictError
from .coverage import coverage_ratio
from .intervals import WatchInterval
from .model import WatchSession
from .repository import WatchSessionRepository

logger = logging.getLogger(__name__)

# (merged candidate, ratio before, ratio after) -> state to persist with the merge.
# Both ratios are recomputed from the intervals, never read from the stored column.
Advance = Callable[[WatchSession, float, float], TriggerState]


@dataclass(frozen=True)
class MergeOutcome:
    previous_ratio: float
    session: WatchSession
    intervals_changed: bool


class IntervalMergeStore:
    """Merges progress reports into the persisted session under optimistic concurrency.

    Every write is a compare-and-swap on ``version``; a lost race reloads the row
    and re-applies the report, which is safe because merging is idempotent.
    """

    def __init__(self, sessions: WatchSessionRepository, *, cas_attempts: int = DEFAULT_SESSION_CAS_ATTEMPTS):
        self._sessions = sessions
        self._cas_attempts = max(int(cas_attempts), 1)

    def load(self, key: AttendanceKey) -> Optional[WatchSession]:
        return self._sessions.get(key)

    def _load_or_create(self, key: AttendanceKey, now: datetime) -> WatchSession:
        current = self._sessions.get(key)
        if current is not None:
            return current
        created = self._sessions.insert(WatchSession.start(key, now))
        if created is not None:
            return created
        # Lost the insert race; the winner's row is there now.
        current = self._sessions.get(key)
        if current is None:
            raise ConcurrencyConflictError(f"Session for {key} vanished during creation")
        return current

    def report(
        self,
        key: AttendanceKey,
        interval: WatchInterval,
        observed_at: datetime,
        *,
        duration: float,
        advance: Optional[Advance] = None,
    ) -> MergeOutcome:
        for attempt in range(1, self._cas_attempts + 1):
            current = self._load_or_create(key, observed_at)

            merged = current.intervals.add(interval)
            covered = merged.covered_length
            previous_ratio = coverage_ratio(current.intervals, duration)
            merged_ratio = coverage_ratio(merged, duration)
            ratio = max(current.coverage_ratio, merged_ratio)
            candidate = replace(current, intervals=merged, covered_seconds=covered, coverage_ratio=ratio)
            state = advance(candidate, previous_ratio, merged_ratio) if advance else candidate.state

            last_activity = observed_at
            if current.last_activity is not None and current.last_activity > observed_at:
                last_activity = current.last_activity

            updated = replace(
                candidate,
                state=state,
                version=current.version + 1,
                last_activity=last_activity,
                closed_at=None,
            )
            if self._sessions.update(updated, expected_version=current.version):
                if current.is_closed:
                    logger.info("Re-opened closed session student=%s material=%s date=%s", *key)
                if state != current.state:
                    logger.info(
                        "Session student=%s material=%s date=%s: %s -> %s (coverage %.3f)",
                        *key,
                        current.state.value,
                        state.value,
                        ratio,
                    )
                return MergeOutcome(
                    previous_ratio=previous_ratio,
                    session=updated,
                    intervals_changed=merged != current.intervals,
                )

            logger.debug("Version conflict on %s (attempt %d/%d)", key, attempt, self._cas_attempts)

        raise ConcurrencyConflictError(f"Too many concurrent updates for {key}, retry the report")

    def transition(self, key: AttendanceKey, *, from_state: TriggerState, to_state: TriggerState) -> WatchSession:
        """Move ``from_state`` -> ``to_state``; a session already elsewhere is returned unchanged."""
        for attempt in range(1, self._cas_attempts + 1):
            current = self._sessions.get(key)
            if current is None:
                raise ConcurrencyConflictError(f"Session for {key} does not exist")
            if current.state != from_state:
                return current

            updated = replace(current, state=to_state, version=current.version + 1)
            if self._sessions.update(updated, expected_version=current.version):
                logger.info(
                    "Session student=%s material=%s date=%s: %s -> %s", *key, from_state.value, to_state.value
                )
                return updated

            logger.debug("Version conflict on %s (attempt %d/%d)", key, attempt, self._cas_attempts)

        raise ConcurrencyConflictError(f"Too many concurrent updates for {key}")

    def close(
        self,
        key: AttendanceKey,
        now: datetime,
        *,
        inactive_before: Optional[datetime] = None,
    ) -> Optional[WatchSession]:
        """Finalize a session.

        With ``inactive_before`` the close only happens if the session has seen no
        activity since then; a report that slips in first wins and the close is skipped.
        Returns the closed session, or None when nothing was closed.
        """
        for attempt in range(1, self._cas_attempts + 1):
            current = self._sessions.get(key)
            if current is None or current.is_closed:
                return None
            if (
                inactive_before is not None
                and current.last_activity is not None
                and current.last_activity >= inactive_before
            ):
                return None

            updated = replace(current, closed_at=now, version=current.version + 1)
            if self._sessions.update(updated, expected_version=current.version):
                logger.info(
                    "Closed session student=%s material=%s date=%s at coverage %.3f (%s)",
                    *key,
                    current.coverage_ratio,
                    current.state.value,
                )
                return updated

            logger.debug("Version conflict closing %s (attempt %d/%d)", key, attempt, self._cas_attempts)

        raise ConcurrencyConflictError(f"Too many concurrent updates closing {key}")
