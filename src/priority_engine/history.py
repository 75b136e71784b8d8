"""
Historical pattern store.

Per-user rolling statistics read during scoring. Patterns are synthesized
with defaults on first use or once older than PATTERN_MAX_AGE; only
record_completion() changes a stored pattern.
"""

import math
from collections.abc import Callable
from datetime import datetime
from datetime import timedelta
from pathlib import Path

import logfire
from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError

from priority_engine.models import HistoricalPattern
from priority_engine.models import Task

PATTERN_MAX_AGE = timedelta(days=7)

DEFAULT_COMPLETION_HOURS = 4.0
DEFAULT_SUCCESS_RATE = 0.75
BUSINESS_HOURS = [9, 10, 11, 14, 15, 16]
WEEKDAYS = [0, 1, 2, 3, 4]


def default_pattern(now: datetime | None = None) -> HistoricalPattern:
    """Pattern assumed for users without fresh history."""
    return HistoricalPattern(
        average_completion_time=DEFAULT_COMPLETION_HOURS,
        success_rate=DEFAULT_SUCCESS_RATE,
        time_of_day_preference=list(BUSINESS_HOURS),
        day_of_week_preference=list(WEEKDAYS),
        similar_tasks_completed=0,
        last_updated=now or datetime.now(),
    )


class HistoricalPatternStore:
    """
    In-memory pattern store.

    Suitable for tests and single-process use; history is lost on
    restart. See JsonFileHistoricalPatternStore for a durable variant.
    """

    def __init__(
        self,
        max_age: timedelta = PATTERN_MAX_AGE,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.max_age = max_age
        self._clock = clock
        self._patterns: dict[str, HistoricalPattern] = {}

    def _is_fresh(self, pattern: HistoricalPattern) -> bool:
        return self._clock() - pattern.last_updated < self.max_age

    def _store(self, user_id: str, pattern: HistoricalPattern) -> None:
        self._patterns[user_id] = pattern

    def get(self, user_id: str) -> HistoricalPattern:
        """Fresh pattern for user_id, regenerating defaults when needed."""
        pattern = self._patterns.get(user_id)
        if pattern is not None and self._is_fresh(pattern):
            return pattern

        pattern = default_pattern(self._clock())
        self._store(user_id, pattern)
        return pattern

    def record_completion(
        self,
        user_id: str,
        completed_task: Task,
        actual_hours: float,
    ) -> HistoricalPattern:
        """
        Fold one completed task into the user's pattern.

        Args:
            user_id: Owner of the completed task.
            completed_task: The task that was completed.
            actual_hours: Time it actually took.

        Returns:
            The updated pattern, which is also stored.

        Raises:
            ValueError: If actual_hours is negative or not finite.
        """
        if not math.isfinite(actual_hours) or actual_hours < 0:
            raise ValueError(
                f"actual_hours must be a finite value >= 0, got {actual_hours}"
            )

        now = self._clock()
        pattern = self.get(user_id)
        n = pattern.similar_tasks_completed

        hours = list(pattern.time_of_day_preference)
        if now.hour not in hours:
            hours.append(now.hour)
        days = list(pattern.day_of_week_preference)
        if now.weekday() not in days:
            days.append(now.weekday())

        updated = pattern.model_copy(
            update={
                "average_completion_time": (
                    pattern.average_completion_time * n + actual_hours
                )
                / (n + 1),
                "similar_tasks_completed": n + 1,
                "time_of_day_preference": hours,
                "day_of_week_preference": days,
                "last_updated": now,
            }
        )
        self._store(user_id, updated)
        logfire.info(
            "Recorded task completion",
            user_id=user_id,
            task_id=completed_task.id,
            actual_hours=actual_hours,
            completed=updated.similar_tasks_completed,
        )
        return updated

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._patterns


class PatternSnapshot(BaseModel):
    """On-disk layout of JsonFileHistoricalPatternStore."""

    patterns: dict[str, HistoricalPattern] = Field(default_factory=dict)


class JsonFileHistoricalPatternStore(HistoricalPatternStore):
    """
    Pattern store persisted to a JSON file.

    Writes are synchronous, like JsonFilePriorityCache. With autosave
    (the default) every stored pattern rewrites the file; with
    autosave=False writes wait for flush().
    """

    def __init__(
        self,
        path: str | Path,
        max_age: timedelta = PATTERN_MAX_AGE,
        clock: Callable[[], datetime] = datetime.now,
        autosave: bool = True,
    ) -> None:
        super().__init__(max_age=max_age, clock=clock)
        self.path = Path(path)
        self.autosave = autosave
        self._dirty = False
        self._patterns = self._load()

    def _load(self) -> dict[str, HistoricalPattern]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
            return PatternSnapshot.model_validate_json(raw).patterns
        except (OSError, ValidationError) as exc:
            logfire.warn(
                "Discarding unreadable pattern store",
                path=str(self.path),
                error=str(exc),
            )
            return {}

    def _store(self, user_id: str, pattern: HistoricalPattern) -> None:
        super()._store(user_id, pattern)
        self._dirty = True
        if self.autosave:
            self.flush()

    def flush(self) -> None:
        """Write pending patterns to disk. No-op when nothing changed."""
        if not self._dirty:
            return
        snapshot = PatternSnapshot(patterns=self._patterns)
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        temp_path.write_text(
            snapshot.model_dump_json(indent=2), encoding="utf-8"
        )
        temp_path.replace(self.path)
        self._dirty = False
