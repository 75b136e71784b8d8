"""Tests for the record types."""

import pytest
from conftest import make_score
from pydantic import ValidationError

from priority_engine.models import PriorityScore
from priority_engine.models import Task
from priority_engine.models import TaskAnalysis
from priority_engine.models import TaskStatus
from priority_engine.models import flatten_tasks
from priority_engine.models import index_tasks
from priority_engine.models import with_priority_score


class TestPriorityScore:
    """Tests for PriorityScore."""

    def test_is_frozen(self):
        score = make_score()
        with pytest.raises(ValidationError):
            score.overall = 10

    @pytest.mark.parametrize("value", [-1, 101])
    def test_components_bounded(self, value):
        with pytest.raises(ValidationError):
            PriorityScore(
                impact_score=value,
                effort_score=50,
                urgency_score=50,
                dependency_score=50,
                workload_score=50,
                overall=50,
                confidence=50,
            )


class TestTask:
    """Tests for Task and its helpers."""

    def test_defaults(self):
        task = Task(id="t", title="Write tests")
        assert not task.completed
        assert task.priority.value == "medium"
        assert task.status == TaskStatus.NOT_STARTED
        assert task.dependencies == []
        assert not task.is_subtask

    def test_status_values(self):
        task = Task.model_validate(
            {"id": "t", "title": "t", "status": "In progress"}
        )
        assert task.status == TaskStatus.IN_PROGRESS

    def test_difficulty_label(self):
        assert TaskAnalysis(difficulty="Hard - new API").difficulty_label == "Hard"
        assert TaskAnalysis(difficulty="Easy").difficulty_label == "Easy"

    def test_flatten_tasks_fills_parent_id(self):
        parent = Task(
            id="p",
            title="Parent",
            subtasks=[Task(id="s1", title="Sub"), Task(id="s2", title="Sub", parent_id="p")],
        )

        flat = list(flatten_tasks([parent, Task(id="q", title="Other")]))

        assert [t.id for t in flat] == ["p", "s1", "s2", "q"]
        assert all(t.parent_id == "p" for t in flat[1:3])
        assert flat[1].is_subtask
        assert parent.subtasks[0].parent_id is None

    def test_with_priority_score_copies(self):
        task = Task(id="t", title="t")
        score = make_score(overall=81)

        scored = with_priority_score(task, score)

        assert scored.priority_score == score
        assert task.priority_score is None

    def test_index_tasks_includes_nested_subtasks_once(self):
        sub = Task(id="s", title="Sub", parent_id="p")
        parent = Task(id="p", title="Parent", subtasks=[sub])

        index = index_tasks([parent, sub, Task(id="q", title="Other")])

        assert list(index) == ["p", "s", "q"]
        assert index["s"].parent_id == "p"
