"""Tests for the inference client."""

from datetime import datetime
from unittest.mock import AsyncMock
from unittest.mock import patch

import pytest
from pydantic_ai.exceptions import ModelHTTPError

from priority_engine.history import default_pattern
from priority_engine.inference import InferenceClient
from priority_engine.inference import ScoreParseError
from priority_engine.inference import build_effort_prompt
from priority_engine.inference import build_impact_prompt
from priority_engine.inference import parse_score
from priority_engine.models import EffortLevel
from priority_engine.models import ImpactLevel
from priority_engine.models import Priority
from priority_engine.models import Task
from priority_engine.retry import RateLimitedError


@pytest.fixture
def task():
    return Task(
        id="t1",
        title="Ship release notes",
        priority=Priority.HIGH,
        estimated_time="4h",
        due_date=datetime(2024, 1, 18, 12, 0),
        impact_level=ImpactLevel.HIGH,
        effort_level=EffortLevel.LOW,
    )


class TestParseScore:
    """Tests for parse_score."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("85", 85),
            ("Score: 72", 72),
            ("I'd say 40, maybe 50", 40),
            ("250", 100),
            ("0", 0),
            ("  7\n", 7),
        ],
    )
    def test_first_integer_clamped(self, text, expected):
        assert parse_score(text) == expected

    @pytest.mark.parametrize("text", ["", "high", None])
    def test_no_number(self, text):
        with pytest.raises(ScoreParseError):
            parse_score(text)

    def test_parse_error_is_value_error(self):
        assert issubclass(ScoreParseError, ValueError)


class TestPrompts:
    """Tests for the prompt builders."""

    def test_impact_prompt_contents(self, task):
        prompt = build_impact_prompt(task)
        assert '"Ship release notes"' in prompt
        assert "Priority: high" in prompt
        assert "Due date: 2024-01-18" in prompt
        assert "Impact hint: high" in prompt
        assert "90-100" in prompt

    def test_missing_fields_are_marked(self):
        prompt = build_impact_prompt(Task(id="t", title="Bare"))
        assert "Estimated time: Not specified" in prompt
        assert "Due date: Not specified" in prompt

    def test_effort_prompt_includes_history(self, task, clock):
        pattern = default_pattern(clock()).model_copy(
            update={"similar_tasks_completed": 12}
        )
        prompt = build_effort_prompt(task, pattern)
        assert "Average completion time: 4.0 hours" in prompt
        assert "Success rate: 75%" in prompt
        assert "Similar tasks completed: 12" in prompt
        assert "Effort hint: low" in prompt

    def test_effort_prompt_without_history(self, task):
        assert "No history available" in build_effort_prompt(task)


class TestInferenceClient:
    """Tests for InferenceClient."""

    def test_from_env(self):
        with patch.dict("os.environ", {"INFERENCE_API_KEY": "k"}):
            assert InferenceClient.from_env().is_configured
        with patch.dict("os.environ", {"INFERENCE_API_KEY": ""}):
            assert not InferenceClient.from_env().is_configured

    @pytest.mark.asyncio
    async def test_unconfigured_uses_heuristics(self, task, mock_agent):
        client = InferenceClient(agent=mock_agent)

        assert await client.impact_score(task) == 73  # (75 + 70) / 2 = 72.5
        assert await client.effort_score(task) == 25
        mock_agent.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_configured_asks_agent(self, task, mock_agent):
        client = InferenceClient(agent=mock_agent, api_key="k")

        assert await client.impact_score(task) == 80
        assert await client.effort_score(task, None) == 80

        assert mock_agent.run.await_count == 2
        impact_prompt = mock_agent.run.call_args_list[0].args[0]
        assert "Rate the impact" in impact_prompt

    @pytest.mark.asyncio
    async def test_reply_is_clamped(self, task, mock_agent):
        mock_agent.run.return_value.output = "Around 140 I think"
        client = InferenceClient(agent=mock_agent, api_key="k")
        assert await client.impact_score(task) == 100

    @pytest.mark.asyncio
    async def test_unparseable_reply_uses_heuristic(self, task, mock_agent):
        mock_agent.run.return_value.output = "very important"
        client = InferenceClient(agent=mock_agent, api_key="k")
        assert await client.effort_score(task) == 25

    @pytest.mark.asyncio
    async def test_connection_error_uses_heuristic(self, task):
        agent = AsyncMock()
        agent.run.side_effect = ConnectionError("refused")
        client = InferenceClient(agent=agent, api_key="k")
        assert await client.impact_score(task) == 73

    @pytest.mark.asyncio
    async def test_rate_limit_propagates(self, task):
        agent = AsyncMock()
        agent.run.side_effect = ModelHTTPError(status_code=429, model_name="m")
        client = InferenceClient(agent=agent, api_key="k")

        with pytest.raises(RateLimitedError) as exc_info:
            await client.impact_score(task)

        assert isinstance(exc_info.value.__cause__, ModelHTTPError)

    @pytest.mark.asyncio
    async def test_generate(self, mock_agent):
        mock_agent.run.return_value.output = "hello"
        client = InferenceClient(agent=mock_agent, api_key="k")
        assert await client.generate("hi") == "hello"
        mock_agent.run.assert_awaited_once_with("hi")

    def test_agent_created_lazily(self):
        client = InferenceClient(api_key="k")
        with patch(
            "priority_engine.inference.create_scoring_agent"
        ) as create:
            agent = client._get_agent()
            assert client._get_agent() is agent
        create.assert_called_once()
