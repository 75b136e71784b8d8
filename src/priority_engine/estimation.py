"""
Estimation utilities.

Pure functions with no dependencies on the rest of the engine:
- parse_estimated_time: free-form "4h" / "2 days" / "45 min" to hours
- urgency_score: continuous urgency ramp from a due date and an estimate
"""

import re
from datetime import datetime

from priority_engine._utils import clamp
from priority_engine._utils import round_half_up

DEFAULT_ESTIMATE_HOURS = 2.0
HOURS_PER_DAY = 8.0

NO_DUE_DATE_URGENCY = 20
MAX_URGENCY = 100
MIN_URGENCY = 15
URGENCY_HORIZON_DAYS = 14.0

_HOUR_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*h")
_DAY_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*d")
_MINUTE_PATTERN = re.compile(r"(\d+)\s*m")


def parse_estimated_time(text: str | None) -> float:
    """
    Parse a free-text time estimate into hours.

    Hours are checked first, then days (8 working hours each), then
    minutes. Anything unrecognised yields DEFAULT_ESTIMATE_HOURS.

    Example:
        >>> parse_estimated_time("4h")
        4.0
        >>> parse_estimated_time("2 days")
        16.0
        >>> parse_estimated_time("30 min")
        0.5
        >>> parse_estimated_time("soon")
        2.0
    """
    if not text or not isinstance(text, str):
        return DEFAULT_ESTIMATE_HOURS

    lowered = text.lower()
    if match := _HOUR_PATTERN.search(lowered):
        return float(match.group(1))
    if match := _DAY_PATTERN.search(lowered):
        return float(match.group(1)) * HOURS_PER_DAY
    if match := _MINUTE_PATTERN.search(lowered):
        return int(match.group(1)) / 60
    return DEFAULT_ESTIMATE_HOURS


def urgency_score(
    due_date: datetime | None,
    estimated_hours: float = DEFAULT_ESTIMATE_HOURS,
    now: datetime | None = None,
) -> int:
    """
    Urgency in [0, 100] from deadline proximity minus a work buffer.

    The buffer is the estimate in working days, at least one day. Once
    the buffer eats the remaining time the task is at 100; two weeks or
    more of slack bottoms out at 15; in between the score ramps linearly.

    Args:
        due_date: Deadline, or None for tasks without one.
        estimated_hours: Parsed estimate for the task.
        now: Reference time. Defaults to the current time in the due
            date's timezone (naive local time for naive due dates).
            Naive and aware values may be mixed.

    Returns:
        Integer urgency score.
    """
    if due_date is None:
        return NO_DUE_DATE_URGENCY

    if now is None:
        now = datetime.now(due_date.tzinfo)
    elif (due_date.tzinfo is None) != (now.tzinfo is None):
        # naive values are local time
        due_date, now = due_date.astimezone(), now.astimezone()

    days_until_due = (due_date - now).total_seconds() / 86400
    buffer_days = max(1.0, estimated_hours / HOURS_PER_DAY)
    effective_days_left = days_until_due - buffer_days

    if effective_days_left <= 0:
        return MAX_URGENCY
    if effective_days_left >= URGENCY_HORIZON_DAYS:
        return MIN_URGENCY

    t = effective_days_left / URGENCY_HORIZON_DAYS
    score = MIN_URGENCY + (1 - t) * (MAX_URGENCY - MIN_URGENCY)
    return int(clamp(round_half_up(score), MIN_URGENCY, MAX_URGENCY))
