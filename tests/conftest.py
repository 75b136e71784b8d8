"""Shared pytest fixtures for all tests."""

from datetime import datetime
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from priority_engine.cache import InMemoryPriorityCache
from priority_engine.engine import BatchConfig
from priority_engine.engine import PriorityEngine
from priority_engine.history import HistoricalPatternStore
from priority_engine.inference import InferenceClient
from priority_engine.models import PriorityScore


class FakeClock:
    """Settable clock; call it to read the current time."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    """Clock fixed at Monday 2024-01-15 12:00 (naive local time)."""
    return FakeClock(datetime(2024, 1, 15, 12, 0, 0))


@pytest.fixture
def mock_agent():
    """Agent stand-in whose run() answers '80'."""
    agent = AsyncMock()
    agent.run.return_value.output = "80"
    return agent


@pytest.fixture
def engine(clock):
    """Engine without an inference credential and without batch delays."""
    return PriorityEngine(
        cache=InMemoryPriorityCache(clock=clock),
        history=HistoricalPatternStore(clock=clock),
        inference=InferenceClient(),
        batch_config=BatchConfig(task_delay=0, batch_delay=0),
        clock=clock,
    )


@pytest.fixture
def ai_engine(clock, mock_agent):
    """Engine whose inference client is configured with mock_agent."""
    return PriorityEngine(
        cache=InMemoryPriorityCache(clock=clock),
        history=HistoricalPatternStore(clock=clock),
        inference=InferenceClient(agent=mock_agent, api_key="test-key"),
        batch_config=BatchConfig(task_delay=0, batch_delay=0),
        clock=clock,
    )


def make_score(
    overall: int = 60,
    last_updated: datetime | None = None,
    **overrides: int,
) -> PriorityScore:
    """PriorityScore with neutral components unless overridden."""
    values = {
        "impact_score": 50,
        "effort_score": 50,
        "urgency_score": 50,
        "dependency_score": 50,
        "workload_score": 50,
        "confidence": 50,
    }
    values.update(overrides)
    return PriorityScore(
        overall=overall,
        last_updated=last_updated or datetime(2024, 1, 15, 12, 0, 0),
        **values,
    )
