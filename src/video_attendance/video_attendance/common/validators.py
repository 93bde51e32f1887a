from __future__ import annotations

from typing import Any

from ..core.constants import MAX_THRESHOLD_PERCENT, MAX_WEEK, MIN_THRESHOLD_PERCENT, MIN_WEEK
from ..core.exceptions import ValidationError


def require_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number") from None
    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(f"{field_name} must be a finite number")
    return number


def require_positive_int(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer") from None
    if number <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return number


def require_week(value: Any) -> int:
    week = require_positive_int(value, "week")
    if not MIN_WEEK <= week <= MAX_WEEK:
        raise ValidationError(f"week must be between {MIN_WEEK} and {MAX_WEEK}")
    return week


def require_threshold_percent(value: Any) -> float:
    percent = require_number(value, "threshold")
    if not MIN_THRESHOLD_PERCENT <= percent <= MAX_THRESHOLD_PERCENT:
        raise ValidationError(f"threshold must be between {MIN_THRESHOLD_PERCENT} and {MAX_THRESHOLD_PERCENT}")
    return percent
