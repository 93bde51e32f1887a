"""Interval union over the video timeline.

An ``IntervalSet`` holds sorted, pairwise disjoint ranges; ranges that overlap
or merely touch are coalesced, so the set is always minimal and its covered
length is the exact measure of the union of everything ever added.
"""
from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence, Union

from ..common.validators import require_number
from ..core.constants import DURATION_TOLERANCE_SECONDS
from ..core.exceptions import ValidationError


@dataclass(frozen=True, order=True)
class WatchInterval:
    """Half-open range ``[start, end)`` of the video timeline, in seconds."""

    start: float
    end: float

    @property
    def length(self) -> float:
        return self.end - self.start

    @classmethod
    def validated(cls, start, end, *, duration: float) -> "WatchInterval":
        """Build an interval from client input, checked against the video duration."""
        start = require_number(start, "watched_from")
        end = require_number(end, "watched_to")

        if duration <= 0:
            raise ValidationError("Material has no playable duration")
        if start < 0:
            raise ValidationError("watched_from must not be negative")
        if end <= start:
            raise ValidationError("watched_to must be greater than watched_from")
        if end > duration:
            if end - duration > DURATION_TOLERANCE_SECONDS:
                raise ValidationError(f"watched_to exceeds the video duration ({duration:g}s)")
            end = float(duration)
        if start >= end:
            raise ValidationError("watched_from is beyond the end of the video")

        return cls(start=start, end=end)


IntervalLike = Union[WatchInterval, Sequence[float]]


def _coerce(item: IntervalLike) -> WatchInterval:
    if isinstance(item, WatchInterval):
        return item
    start, end = item
    return WatchInterval(float(start), float(end))


class IntervalSet:
    """Immutable minimal set of disjoint watch intervals.

    ``add`` returns a new set (or ``self`` when nothing changes), so a session
    snapshot loaded from the store is never modified in place.
    """

    __slots__ = ("_starts", "_ends")

    def __init__(self, intervals: Iterable[IntervalLike] = ()):
        starts: list[float] = []
        ends: list[float] = []
        for item in sorted(_coerce(i) for i in intervals):
            if item.end <= item.start:
                continue
            if ends and item.start <= ends[-1]:
                ends[-1] = max(ends[-1], item.end)
            else:
                starts.append(item.start)
                ends.append(item.end)
        self._starts = tuple(starts)
        self._ends = tuple(ends)

    @classmethod
    def _from_sorted(cls, starts: tuple, ends: tuple) -> "IntervalSet":
        obj = cls.__new__(cls)
        obj._starts = starts
        obj._ends = ends
        return obj

    def add(self, interval: IntervalLike) -> "IntervalSet":
        new = _coerce(interval)
        if new.end <= new.start:
            return self

        # First stored range ending at or after new.start (touching counts).
        lo = bisect_left(self._ends, new.start)
        # First stored range starting strictly after new.end.
        hi = bisect_right(self._starts, new.end)

        if hi - lo == 1 and self._starts[lo] <= new.start and new.end <= self._ends[lo]:
            return self

        start, end = new.start, new.end
        if lo < hi:
            start = min(start, self._starts[lo])
            end = max(end, self._ends[hi - 1])

        return IntervalSet._from_sorted(
            self._starts[:lo] + (start,) + self._starts[hi:],
            self._ends[:lo] + (end,) + self._ends[hi:],
        )

    @property
    def covered_length(self) -> float:
        return sum(e - s for s, e in zip(self._starts, self._ends))

    def to_list(self) -> list[list[float]]:
        return [[s, e] for s, e in zip(self._starts, self._ends)]

    def __iter__(self) -> Iterator[WatchInterval]:
        for s, e in zip(self._starts, self._ends):
            yield WatchInterval(s, e)

    def __len__(self) -> int:
        return len(self._starts)

    def __bool__(self) -> bool:
        return bool(self._starts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IntervalSet):
            return NotImplemented
        return self._starts == other._starts and self._ends == other._ends

    def __hash__(self) -> int:
        return hash((self._starts, self._ends))

    def __repr__(self) -> str:
        return f"IntervalSet({self.to_list()!r})"
