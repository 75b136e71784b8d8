"""
Inference client for AI-assisted impact and effort judgments.

Wraps a pydantic-ai agent that answers free text. Each component call
builds a rubric prompt, takes the first integer in the reply and clamps
it to [0, 100].

Failure discipline:
- No credential configured: heuristic score, no network I/O
- Rate limit: RateLimitedError propagates so the caller can back off
- Anything else (connection, auth, unparseable reply): heuristic score
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

import logfire
from pydantic_ai import Agent
from pydantic_ai.models import Model

from priority_engine._models import get_api_key
from priority_engine._models import get_model
from priority_engine._utils import clamp
from priority_engine.models import HistoricalPattern
from priority_engine.models import Task
from priority_engine.retry import RateLimitedError
from priority_engine.retry import is_rate_limited
from priority_engine.scoring import basic_effort_score
from priority_engine.scoring import basic_impact_score


class ScoreParseError(ValueError):
    """The model reply did not contain a usable number."""


SCORING_SYSTEM_PROMPT = """You rate personal and work tasks on a 0-100 scale.
Answer with a single integer and nothing else."""

_INTEGER_PATTERN = re.compile(r"\d+")


def _describe(value: object) -> str:
    return str(value) if value not in (None, "") else "Not specified"


def build_impact_prompt(task: Task) -> str:
    """Impact prompt with task context and the impact rubric."""
    due = task.due_date.strftime("%Y-%m-%d") if task.due_date else None
    impact_hint = task.impact_level.value if task.impact_level else None
    return (
        f'Rate the impact of completing this task: "{task.title}"\n'
        "\n"
        "Task details:\n"
        f"- Priority: {task.priority.value}\n"
        f"- Estimated time: {_describe(task.estimated_time)}\n"
        f"- Due date: {_describe(due)}\n"
        f"- Status: {task.status.value}\n"
        f"- Impact hint: {_describe(impact_hint)}\n"
        "\n"
        "Scale:\n"
        "- 90-100: transformational, essential outcome\n"
        "- 70-89: high, clearly valuable\n"
        "- 40-69: moderate, noticeable benefit\n"
        "- 20-39: low, minor improvement\n"
        "- 0-19: minimal, nice to have\n"
        "\n"
        "Reply with the integer score only."
    )


def build_effort_prompt(
    task: Task,
    pattern: HistoricalPattern | None = None,
) -> str:
    """Effort prompt with task context, the user's history and the rubric."""
    effort_hint = task.effort_level.value if task.effort_level else None
    difficulty = task.analysis.difficulty if task.analysis else None
    if pattern is not None:
        history = (
            f"- Average completion time: "
            f"{pattern.average_completion_time:.1f} hours\n"
            f"- Success rate: {pattern.success_rate:.0%}\n"
            f"- Similar tasks completed: {pattern.similar_tasks_completed}\n"
        )
    else:
        history = "- No history available\n"
    return (
        f'Rate the effort needed to complete this task: "{task.title}"\n'
        "\n"
        "Task details:\n"
        f"- Estimated time: {_describe(task.estimated_time)}\n"
        f"- Effort hint: {_describe(effort_hint)}\n"
        f"- Analysed difficulty: {_describe(difficulty)}\n"
        "\n"
        "User history:\n"
        f"{history}"
        "\n"
        "Scale (higher means more effort):\n"
        "- 90-100: very high, long and complex\n"
        "- 70-89: high, demanding\n"
        "- 40-69: medium, moderate complexity\n"
        "- 20-39: low, straightforward\n"
        "- 0-19: trivial, quick and simple\n"
        "\n"
        "Reply with the integer score only."
    )


def parse_score(text: str) -> int:
    """
    First integer in text, clamped to [0, 100].

    Raises:
        ScoreParseError: If text contains no digits.

    Example:
        >>> parse_score("Score: 85/100")
        85
        >>> parse_score("250")
        100
    """
    text = text or ""
    match = _INTEGER_PATTERN.search(text)
    if match is None:
        raise ScoreParseError(f"No score in model reply: {text[:80]!r}")
    return int(clamp(int(match.group(0))))


def create_scoring_agent(
    model: Model | None = None,
) -> Agent[None, str]:
    """
    Create the free-text scoring agent.

    Args:
        model: pydantic-ai Model instance. If None, uses default model.

    Returns:
        Configured scoring agent.
    """
    return Agent(
        model or get_model(),
        system_prompt=SCORING_SYSTEM_PROMPT,
        output_type=str,
    )


@dataclass
class InferenceClient:
    """
    Impact and effort scoring through the inference capability.

    The client is usable without a credential; it then answers every
    request with the deterministic heuristics.
    """

    agent: Agent[None, str] | None = None
    api_key: str | None = None

    @classmethod
    def from_env(cls) -> "InferenceClient":
        """Client using the INFERENCE_API_KEY credential, if any."""
        return cls(api_key=get_api_key())

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_agent(self) -> Agent[None, str]:
        if self.agent is None:
            self.agent = create_scoring_agent(get_model(api_key=self.api_key))
        return self.agent

    async def generate(self, prompt: str) -> str:
        """Send prompt to the model and return its text reply."""
        result = await self._get_agent().run(prompt)
        return result.output

    async def impact_score(self, task: Task) -> int:
        """Impact in [0, 100], higher is more valuable."""
        if not self.is_configured:
            return basic_impact_score(task)
        return await self._score(
            "impact",
            task,
            build_impact_prompt(task),
            lambda: basic_impact_score(task),
        )

    async def effort_score(
        self,
        task: Task,
        pattern: HistoricalPattern | None = None,
    ) -> int:
        """Effort in [0, 100], higher is more work."""
        if not self.is_configured:
            return basic_effort_score(task)
        return await self._score(
            "effort",
            task,
            build_effort_prompt(task, pattern),
            lambda: basic_effort_score(task),
        )

    async def _score(
        self,
        component: str,
        task: Task,
        prompt: str,
        heuristic: Callable[[], int],
    ) -> int:
        try:
            return parse_score(await self.generate(prompt))
        except Exception as exc:
            if is_rate_limited(exc):
                raise RateLimitedError(
                    f"{component} scoring rate limited for task {task.id}"
                ) from exc
            logfire.warn(
                "Inference failed, using heuristic",
                component=component,
                task_id=task.id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return heuristic()
