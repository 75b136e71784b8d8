"""Tests for the historical pattern store."""

import pytest

from priority_engine.history import BUSINESS_HOURS
from priority_engine.history import WEEKDAYS
from priority_engine.history import HistoricalPatternStore
from priority_engine.history import JsonFileHistoricalPatternStore
from priority_engine.history import default_pattern
from priority_engine.models import Task


def _done(task_id: str = "done-1") -> Task:
    return Task(id=task_id, title="Finished", completed=True)


class TestDefaultPattern:
    """Tests for default_pattern."""

    def test_defaults(self, clock):
        pattern = default_pattern(clock())
        assert pattern.average_completion_time == 4.0
        assert pattern.success_rate == 0.75
        assert pattern.time_of_day_preference == BUSINESS_HOURS
        assert pattern.day_of_week_preference == WEEKDAYS
        assert pattern.similar_tasks_completed == 0
        assert pattern.last_updated == clock()


class TestHistoricalPatternStore:
    """Tests for the in-memory store."""

    def test_get_synthesizes_and_stores(self, clock):
        store = HistoricalPatternStore(clock=clock)
        assert "u1" not in store

        pattern = store.get("u1")

        assert "u1" in store
        assert pattern.similar_tasks_completed == 0
        assert store.get("u1") is pattern

    def test_users_are_independent(self, clock):
        store = HistoricalPatternStore(clock=clock)
        store.record_completion("u1", _done(), 6.0)
        assert store.get("u2").similar_tasks_completed == 0

    def test_incremental_mean(self, clock):
        store = HistoricalPatternStore(clock=clock)

        first = store.record_completion("u1", _done("a"), 6.0)
        assert first.average_completion_time == pytest.approx(6.0)
        assert first.similar_tasks_completed == 1

        second = store.record_completion("u1", _done("b"), 2.0)
        assert second.average_completion_time == pytest.approx(4.0)
        assert second.similar_tasks_completed == 2

        third = store.record_completion("u1", _done("c"), 7.0)
        assert third.average_completion_time == pytest.approx(5.0)
        assert store.get("u1") == third

    def test_appends_completion_hour_and_day_once(self, clock):
        store = HistoricalPatternStore(clock=clock)
        clock.advance(hours=8)  # Monday 20:00

        store.record_completion("u1", _done("a"), 1.0)
        pattern = store.record_completion("u1", _done("b"), 1.0)

        assert pattern.time_of_day_preference.count(20) == 1
        # Monday is already a preferred day
        assert pattern.day_of_week_preference.count(0) == 1
        assert pattern.day_of_week_preference == WEEKDAYS

    def test_weekend_completion_adds_day(self, clock):
        store = HistoricalPatternStore(clock=clock)
        clock.advance(days=5)  # Saturday

        pattern = store.record_completion("u1", _done(), 1.0)

        assert 5 in pattern.day_of_week_preference

    def test_refreshes_timestamp(self, clock):
        store = HistoricalPatternStore(clock=clock)
        store.get("u1")
        clock.advance(days=3)

        pattern = store.record_completion("u1", _done(), 1.0)

        assert pattern.last_updated == clock()

    def test_stale_pattern_regenerated(self, clock):
        store = HistoricalPatternStore(clock=clock)
        store.record_completion("u1", _done(), 10.0)
        clock.advance(days=8)

        pattern = store.get("u1")

        assert pattern.similar_tasks_completed == 0
        assert pattern.average_completion_time == 4.0

    def test_pattern_within_week_is_kept(self, clock):
        store = HistoricalPatternStore(clock=clock)
        store.record_completion("u1", _done(), 10.0)
        clock.advance(days=6)
        assert store.get("u1").similar_tasks_completed == 1

    @pytest.mark.parametrize("hours", [-1.0, float("nan"), float("inf")])
    def test_rejects_invalid_hours(self, clock, hours):
        store = HistoricalPatternStore(clock=clock)
        with pytest.raises(ValueError):
            store.record_completion("u1", _done(), hours)
        assert "u1" not in store


class TestJsonFileHistoricalPatternStore:
    """Tests for the file-backed store."""

    def test_persists_completions(self, tmp_path, clock):
        path = tmp_path / "history.json"
        store = JsonFileHistoricalPatternStore(path, clock=clock)
        store.record_completion("u1", _done(), 3.0)

        reloaded = JsonFileHistoricalPatternStore(path, clock=clock)
        pattern = reloaded.get("u1")

        assert pattern.similar_tasks_completed == 1
        assert pattern.average_completion_time == pytest.approx(3.0)

    def test_corrupt_file_starts_empty(self, tmp_path, clock):
        path = tmp_path / "history.json"
        path.write_text("[]", encoding="utf-8")

        store = JsonFileHistoricalPatternStore(path, clock=clock)

        assert "u1" not in store
        assert store.get("u1").similar_tasks_completed == 0

    def test_deferred_writes_until_flush(self, tmp_path, clock):
        path = tmp_path / "history.json"
        store = JsonFileHistoricalPatternStore(path, clock=clock, autosave=False)
        store.record_completion("u1", _done(), 3.0)

        assert not path.exists()

        store.flush()

        reloaded = JsonFileHistoricalPatternStore(path, clock=clock)
        assert reloaded.get("u1").similar_tasks_completed == 1
