"""
Deterministic scoring components.

Everything here is pure and synchronous:
- basic_impact_score / basic_effort_score: heuristics used when the
  inference capability is unavailable or fails
- dependency_score: blocking relationships
- workload_score: the user's open workload against weekly capacity
- overall_score: fixed-weight aggregate of the five components
- confidence_score: how much input data backed the score
- fallback_score: the degraded score returned when scoring itself fails
"""

import math
from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime

from priority_engine._utils import clamp
from priority_engine._utils import round_half_up
from priority_engine.estimation import parse_estimated_time
from priority_engine.estimation import urgency_score
from priority_engine.models import DependencyType
from priority_engine.models import EffortLevel
from priority_engine.models import HistoricalPattern
from priority_engine.models import ImpactLevel
from priority_engine.models import Priority
from priority_engine.models import PriorityScore
from priority_engine.models import Task
from priority_engine.models import index_tasks

PRIORITY_IMPACT = {Priority.HIGH: 75, Priority.MEDIUM: 50, Priority.LOW: 25}
IMPACT_LEVEL_SCORES = {
    ImpactLevel.CRITICAL: 90,
    ImpactLevel.HIGH: 70,
    ImpactLevel.MEDIUM: 50,
    ImpactLevel.LOW: 30,
}
EFFORT_LEVEL_SCORES = {
    EffortLevel.VERY_HIGH: 85,
    EffortLevel.HIGH: 65,
    EffortLevel.MEDIUM: 45,
    EffortLevel.LOW: 25,
}
DIFFICULTY_SCORES = {"Hard": 75, "Medium": 50, "Easy": 25}
NEUTRAL_SCORE = 50

BLOCKS_BONUS = 15
BLOCKED_BY_PENALTY = 20
RELATED_BONUS = 5
RELATED_BONUS_CAP = 15

WEEKLY_CAPACITY_HOURS = 40.0
# (load ratio strictly above, score), checked in order
WORKLOAD_BANDS = ((2.0, 80), (1.5, 65), (1.0, 50), (0.5, 35))
LIGHT_WORKLOAD_SCORE = 20

FALLBACK_CONFIDENCE = 30


@dataclass(frozen=True)
class ScoringWeights:
    """
    Weights of the overall aggregate.

    Must sum to 1.0 so the aggregate stays in [0, 100]. Effort is
    inverted before weighting: cheaper tasks contribute more.
    """

    impact: float = 0.30
    effort: float = 0.20
    urgency: float = 0.25
    dependency: float = 0.15
    workload: float = 0.10

    def __post_init__(self) -> None:
        weights = (
            self.impact,
            self.effort,
            self.urgency,
            self.dependency,
            self.workload,
        )
        if any(w < 0 for w in weights):
            raise ValueError("weights must be non-negative")
        if not math.isclose(sum(weights), 1.0, abs_tol=1e-9):
            raise ValueError(f"weights must sum to 1.0, got {sum(weights)}")


def basic_impact_score(task: Task) -> int:
    """Impact from priority, averaged with the impact hint when present."""
    score: float = PRIORITY_IMPACT.get(task.priority, NEUTRAL_SCORE)
    if task.impact_level is not None:
        score = (score + IMPACT_LEVEL_SCORES[task.impact_level]) / 2
    return round_half_up(score)


def basic_effort_score(task: Task) -> int:
    """Effort from the effort hint, else the analysed difficulty, else 50."""
    if task.effort_level is not None:
        return EFFORT_LEVEL_SCORES[task.effort_level]
    if task.analysis is not None and task.analysis.difficulty:
        return DIFFICULTY_SCORES.get(
            task.analysis.difficulty_label, NEUTRAL_SCORE
        )
    return NEUTRAL_SCORE


def dependency_score(task: Task, all_tasks: Iterable[Task]) -> int:
    """
    Score blocking relationships around task.

    Each task this one blocks adds 15; each incomplete blocker subtracts
    20; related tasks add 5 each up to 15. Blockers that are completed or
    missing from all_tasks (including nested subtasks) are ignored.
    """
    if not task.dependencies:
        return NEUTRAL_SCORE

    by_id = index_tasks(all_tasks)
    blocks = 0
    blocked = 0
    related = 0
    for dep in task.dependencies:
        match dep.type:
            case DependencyType.BLOCKS:
                blocks += 1
            case DependencyType.BLOCKED_BY:
                blocker = by_id.get(dep.task_id)
                if blocker is not None and not blocker.completed:
                    blocked += 1
            case DependencyType.RELATED_TO:
                related += 1

    score = (
        NEUTRAL_SCORE
        + blocks * BLOCKS_BONUS
        - blocked * BLOCKED_BY_PENALTY
        + min(related * RELATED_BONUS, RELATED_BONUS_CAP)
    )
    return int(clamp(score))


def task_owner(task: Task, tasks_by_id: Mapping[str, Task]) -> str | None:
    """
    Resolve the owner of task.

    Main tasks carry owner_id. Subtasks inherit it from their parent,
    looked up through parent_id; an explicit owner_id on a subtask wins.
    Returns None when no owner can be resolved.
    """
    seen: set[str] = set()
    current: Task | None = task
    while current is not None and current.id not in seen:
        if current.owner_id:
            return current.owner_id
        seen.add(current.id)
        if current.parent_id is None:
            return None
        current = tasks_by_id.get(current.parent_id)
    return None


def workload_score(all_tasks: Iterable[Task], user_id: str) -> int:
    """
    Map the user's open workload onto a score.

    Sums the estimates of incomplete tasks owned by user_id (tasks whose
    owner cannot be resolved are counted too) against a 40 hour week.
    Nested subtasks count towards the owner of their parent. Heavier load
    scores higher so quick wins rise.
    """
    by_id = index_tasks(all_tasks)
    total_hours = 0.0
    for t in by_id.values():
        if t.completed:
            continue
        owner = task_owner(t, by_id)
        if owner is not None and owner != user_id:
            continue
        total_hours += parse_estimated_time(t.estimated_time)

    ratio = total_hours / WEEKLY_CAPACITY_HOURS
    for threshold, score in WORKLOAD_BANDS:
        if ratio > threshold:
            return score
    return LIGHT_WORKLOAD_SCORE


def overall_score(
    impact: int,
    effort: int,
    urgency: int,
    dependency: int,
    workload: int,
    weights: ScoringWeights | None = None,
) -> int:
    """
    Fixed-weight aggregate of the five components.

    Example:
        >>> overall_score(75, 50, 88, 50, 20)
        64
    """
    w = weights or ScoringWeights()
    total = (
        impact * w.impact
        + (100 - effort) * w.effort
        + urgency * w.urgency
        + dependency * w.dependency
        + workload * w.workload
    )
    # float error can land a hair outside [0, 100] before rounding
    return int(clamp(round_half_up(round(total, 9))))


def confidence_score(task: Task, pattern: HistoricalPattern | None) -> int:
    """Confidence from the amount of supporting data. Informational only."""
    confidence = 50
    if task.analysis is not None:
        confidence += 20
    if task.estimated_time:
        confidence += 15
    if task.due_date is not None:
        confidence += 10
    if pattern is not None and pattern.similar_tasks_completed > 0:
        confidence += 20
    if task.dependencies:
        confidence += 10
    return min(100, confidence)


def fallback_score(task: Task, now: datetime | None = None) -> PriorityScore:
    """
    Degraded score used when full scoring fails.

    A plain average of heuristic impact, inverted heuristic effort and
    urgency, with neutral dependency/workload and fixed low confidence.
    """
    impact = basic_impact_score(task)
    effort = basic_effort_score(task)
    urgency = urgency_score(
        task.due_date, parse_estimated_time(task.estimated_time), now
    )
    return PriorityScore(
        impact_score=impact,
        effort_score=effort,
        urgency_score=urgency,
        dependency_score=NEUTRAL_SCORE,
        workload_score=NEUTRAL_SCORE,
        overall=round_half_up((impact + (100 - effort) + urgency) / 3),
        confidence=FALLBACK_CONFIDENCE,
        last_updated=now or datetime.now(),
    )
