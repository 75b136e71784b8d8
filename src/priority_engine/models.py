"""
Records exchanged between the scoring engine and its collaborators.

Tasks and subtasks share one record type; a subtask is a Task whose
parent_id is set and which normally carries no owner_id of its own.
"""

from collections.abc import Iterable
from collections.abc import Iterator
from datetime import datetime
from enum import Enum

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class Priority(str, Enum):
    """User-assigned priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    """Task status values."""

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In progress"
    COMPLETED = "Completed"


class ImpactLevel(str, Enum):
    """Optional impact hint supplied with a task."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EffortLevel(str, Enum):
    """Optional effort hint supplied with a task."""

    VERY_HIGH = "very_high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DependencyType(str, Enum):
    """Directional relationship between two tasks."""

    BLOCKS = "blocks"
    BLOCKED_BY = "blocked_by"
    RELATED_TO = "related_to"


class Dependency(BaseModel):
    """Edge from the owning task to another task."""

    task_id: str = Field(description="Referenced task identifier")
    type: DependencyType = Field(description="Relationship kind")


class TaskAnalysis(BaseModel):
    """Earlier AI analysis attached to a task."""

    category: str = ""
    how_to: str = ""
    estimated_time: str = ""
    difficulty: str = Field(
        default="",
        description="'Easy', 'Medium' or 'Hard', optionally ' - reason'",
    )
    resources: str = ""
    potential_blockers: str = ""
    next_steps: str = ""

    @property
    def difficulty_label(self) -> str:
        """Label part of a 'Label - rest' difficulty string."""
        return self.difficulty.split(" - ")[0].strip()


class PriorityScore(BaseModel):
    """Five component scores plus the aggregate. Never mutated."""

    model_config = ConfigDict(frozen=True)

    impact_score: int = Field(ge=0, le=100)
    effort_score: int = Field(ge=0, le=100)
    urgency_score: int = Field(ge=0, le=100)
    dependency_score: int = Field(ge=0, le=100)
    workload_score: int = Field(ge=0, le=100)
    overall: int = Field(ge=0, le=100)
    confidence: int = Field(ge=0, le=100)
    last_updated: datetime = Field(default_factory=datetime.now)


class Task(BaseModel):
    """A main task or a subtask."""

    id: str
    title: str
    completed: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    due_date: datetime | None = None
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.NOT_STARTED
    analysis: TaskAnalysis | None = None
    estimated_time: str | None = None
    effort_level: EffortLevel | None = None
    impact_level: ImpactLevel | None = None
    dependencies: list[Dependency] = Field(default_factory=list)
    priority_score: PriorityScore | None = None
    owner_id: str | None = None
    parent_id: str | None = None
    subtasks: list["Task"] = Field(default_factory=list)

    @property
    def is_subtask(self) -> bool:
        return self.parent_id is not None


class HistoricalPattern(BaseModel):
    """Rolling completion statistics for one user."""

    average_completion_time: float = Field(
        ge=0.0, description="Average hours to complete a task"
    )
    success_rate: float = Field(ge=0.0, le=1.0)
    time_of_day_preference: list[int] = Field(default_factory=list)
    day_of_week_preference: list[int] = Field(
        default_factory=list,
        description="Weekday numbers, Monday=0",
    )
    similar_tasks_completed: int = Field(default=0, ge=0)
    last_updated: datetime = Field(default_factory=datetime.now)


def flatten_tasks(tasks: Iterable[Task]) -> Iterator[Task]:
    """
    Yield each task followed by its subtasks.

    Subtasks without a parent_id get the parent's id filled in so that
    ownership can be resolved against the flattened list.
    """
    for task in tasks:
        yield task
        for sub in task.subtasks:
            if sub.parent_id is None:
                sub = sub.model_copy(update={"parent_id": task.id})
            yield sub


def index_tasks(tasks: Iterable[Task]) -> dict[str, Task]:
    """
    Map id to task over tasks and their nested subtasks.

    Lists that already carry subtasks both nested and flat are indexed
    once per id; the first occurrence wins.
    """
    index: dict[str, Task] = {}
    for task in flatten_tasks(tasks):
        index.setdefault(task.id, task)
    return index


def with_priority_score(task: Task, score: PriorityScore) -> Task:
    """Copy of task carrying score; the original record is left untouched."""
    return task.model_copy(update={"priority_score": score})
