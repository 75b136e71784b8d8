"""
Views over scored tasks.

- score_status: how fresh an attached score is
- should_calculate_priority_score: whether a task is worth scoring
- get_priority_recommendations: top, quick-win, urgent and blocker picks
"""

from collections.abc import Callable
from collections.abc import Iterable
from datetime import datetime
from datetime import timedelta
from enum import Enum

from pydantic import BaseModel
from pydantic import Field

from priority_engine.models import Priority
from priority_engine.models import PriorityScore
from priority_engine.models import Task

AGING_AFTER = timedelta(hours=1)
STALE_AFTER = timedelta(days=1)

QUICK_WIN_MIN_IMPACT = 60
QUICK_WIN_MAX_EFFORT = 40
URGENT_MIN_URGENCY = 70
BLOCKER_MIN_DEPENDENCY = 70


class ScoreStatus(str, Enum):
    """Freshness of an attached score."""

    MISSING = "missing"
    FRESH = "fresh"
    AGING = "aging"
    STALE = "stale"


class ScoreStatusReport(BaseModel):
    """Freshness verdict for one score."""

    status: ScoreStatus
    message: str
    needs_calculation: bool


class PriorityRecommendations(BaseModel):
    """Highlighted tasks, each list sorted by overall score."""

    top_priority: list[Task] = Field(default_factory=list)
    quick_wins: list[Task] = Field(default_factory=list)
    urgent: list[Task] = Field(default_factory=list)
    blockers: list[Task] = Field(default_factory=list)


def score_status(
    score: PriorityScore | None,
    now: datetime | None = None,
) -> ScoreStatusReport:
    """
    Classify an attached score by age.

    Aging scores (older than an hour) are still usable; stale scores
    (older than a day) and missing ones should be recalculated.
    """
    if score is None:
        return ScoreStatusReport(
            status=ScoreStatus.MISSING,
            message="No priority score available",
            needs_calculation=True,
        )

    age = (now or datetime.now()) - score.last_updated
    if age > STALE_AFTER:
        return ScoreStatusReport(
            status=ScoreStatus.STALE,
            message="Priority score is outdated (older than a day)",
            needs_calculation=True,
        )
    if age > AGING_AFTER:
        return ScoreStatusReport(
            status=ScoreStatus.AGING,
            message="Priority score is aging (older than an hour)",
            needs_calculation=False,
        )
    return ScoreStatusReport(
        status=ScoreStatus.FRESH,
        message="Priority score is up to date",
        needs_calculation=False,
    )


def should_calculate_priority_score(task: Task) -> bool:
    """Worth an inference round trip: high priority, deadline, links or analysis."""
    return (
        task.priority == Priority.HIGH
        or task.due_date is not None
        or bool(task.dependencies)
        or task.analysis is not None
    )


def get_priority_recommendations(
    tasks: Iterable[Task],
    limit: int = 3,
) -> PriorityRecommendations:
    """
    Pick highlights among incomplete tasks that carry a score.

    Args:
        tasks: Tasks, typically after populate_cached_scores().
        limit: Maximum entries per list.

    Returns:
        PriorityRecommendations with up to limit tasks per category.
    """
    scored = sorted(
        (t for t in tasks if not t.completed and t.priority_score is not None),
        key=lambda t: t.priority_score.overall,
        reverse=True,
    )

    def pick(predicate: Callable[[PriorityScore], bool]) -> list[Task]:
        return [t for t in scored if predicate(t.priority_score)][:limit]

    return PriorityRecommendations(
        top_priority=scored[:limit],
        quick_wins=pick(
            lambda s: s.impact_score >= QUICK_WIN_MIN_IMPACT
            and s.effort_score <= QUICK_WIN_MAX_EFFORT
        ),
        urgent=pick(lambda s: s.urgency_score >= URGENT_MIN_URGENCY),
        blockers=pick(lambda s: s.dependency_score >= BLOCKER_MIN_DEPENDENCY),
    )
