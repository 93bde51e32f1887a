from __future__ import annotations

from typing import Iterable

from .intervals import IntervalLike, IntervalSet


def coverage_ratio(intervals: IntervalSet | Iterable[IntervalLike], duration: float) -> float:
    """Fraction of ``duration`` covered by the union of ``intervals``, in [0.0, 1.0]."""
    if duration is None or duration <= 0:
        return 0.0
    if not isinstance(intervals, IntervalSet):
        intervals = IntervalSet(intervals)
    ratio = intervals.covered_length / float(duration)
    return max(0.0, min(ratio, 1.0))


def crossed_threshold(previous_ratio: float, new_ratio: float, threshold: float) -> bool:
    """One-shot crossing: true only for ``previous < threshold <= new``."""
    return previous_ratio < threshold <= new_ratio


def threshold_fraction(percent: float) -> float:
    return max(0.0, min(float(percent) / 100.0, 1.0))
