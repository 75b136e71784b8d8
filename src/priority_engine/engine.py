"""
Priority scoring engine.

Combines AI judgments, deterministic heuristics, per-user history and
inter-task dependencies into one PriorityScore per task.

Single task:
    cache hit -> return it unchanged
    otherwise -> five components -> weighted overall -> cache -> return
    any failure -> degraded fallback score (never raised to the caller)

Batch:
    cached tasks first, then the rest in small sequential groups with
    fixed delays between tasks and groups; rate limits are retried with
    exponential backoff and a task that still fails gets the fallback.

Example usage:
    engine = PriorityEngine()
    score = await engine.calculate_priority_score(task, all_tasks, "user-1")
    scores = await engine.calculate_batch_priority_scores(tasks, "user-1")
"""

import asyncio
from collections.abc import Callable
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime

import logfire

from priority_engine._utils import ScoringMetrics
from priority_engine._utils import chunked
from priority_engine.cache import InMemoryPriorityCache
from priority_engine.cache import PriorityCache
from priority_engine.estimation import parse_estimated_time
from priority_engine.estimation import urgency_score
from priority_engine.history import HistoricalPatternStore
from priority_engine.inference import InferenceClient
from priority_engine.models import PriorityScore
from priority_engine.models import Task
from priority_engine.models import index_tasks
from priority_engine.models import with_priority_score
from priority_engine.retry import RetryConfig
from priority_engine.retry import backoff_delay
from priority_engine.retry import is_rate_limited
from priority_engine.scoring import FALLBACK_CONFIDENCE
from priority_engine.scoring import NEUTRAL_SCORE
from priority_engine.scoring import ScoringWeights
from priority_engine.scoring import confidence_score
from priority_engine.scoring import dependency_score
from priority_engine.scoring import fallback_score
from priority_engine.scoring import overall_score
from priority_engine.scoring import workload_score

ProgressCallback = Callable[[int, int], None]


@dataclass
class BatchConfig:
    """Pacing for batch scoring against a rate-limited provider."""

    batch_size: int = 2
    task_delay: float = 1.0  # seconds between tasks in a group
    batch_delay: float = 2.0  # seconds between groups
    retry: RetryConfig = field(default_factory=RetryConfig)

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.task_delay < 0 or self.batch_delay < 0:
            raise ValueError("delays must be >= 0")


class PriorityEngine:
    """
    Orchestrates priority scoring.

    All collaborators are injected so tests can substitute fakes; the
    defaults give an in-memory cache and history and an inference client
    configured from the environment.
    """

    def __init__(
        self,
        cache: PriorityCache | None = None,
        history: HistoricalPatternStore | None = None,
        inference: InferenceClient | None = None,
        weights: ScoringWeights | None = None,
        batch_config: BatchConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.cache = cache if cache is not None else InMemoryPriorityCache()
        self.history = history if history is not None else HistoricalPatternStore()
        self.inference = inference or InferenceClient.from_env()
        self.weights = weights or ScoringWeights()
        self.batch_config = batch_config or BatchConfig()
        self._clock = clock
        self.metrics = ScoringMetrics()

    # -----------------------------------------------------------------
    # Single task
    # -----------------------------------------------------------------

    async def calculate_priority_score(
        self,
        task: Task,
        all_tasks: Sequence[Task],
        user_id: str,
    ) -> PriorityScore:
        """
        Score one task. Never raises.

        Args:
            task: Task to score.
            all_tasks: Every task known for the user, used for dependency
                lookups and workload.
            user_id: Owner whose history and workload apply.

        Returns:
            Cached score if fresh, else a newly computed score, else the
            degraded fallback.
        """
        with logfire.span("calculate_priority_score", task_id=task.id):
            cached = self._cached(task.id)
            if cached is not None:
                return cached
            try:
                return await self._compute_score(task, all_tasks, user_id)
            except Exception as exc:
                return self._fallback(task, exc)

    async def _compute_score(
        self,
        task: Task,
        all_tasks: Sequence[Task],
        user_id: str,
    ) -> PriorityScore:
        """Full computation without the cache check. May raise."""
        pattern = self.history.get(user_id)
        now = self._clock()

        results = await asyncio.gather(
            self.inference.impact_score(task),
            self.inference.effort_score(task, pattern),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        impact, effort = results

        urgency = urgency_score(
            task.due_date, parse_estimated_time(task.estimated_time), now
        )
        dependency = dependency_score(task, all_tasks)
        workload = workload_score(all_tasks, user_id)

        score = PriorityScore(
            impact_score=impact,
            effort_score=effort,
            urgency_score=urgency,
            dependency_score=dependency,
            workload_score=workload,
            overall=overall_score(
                impact, effort, urgency, dependency, workload, self.weights
            ),
            confidence=confidence_score(task, pattern),
            last_updated=now,
        )
        self.cache.set(task.id, score)
        self.metrics.increment("scores_computed")
        logfire.info(
            "Priority score computed",
            task_id=task.id,
            overall=score.overall,
            confidence=score.confidence,
        )
        return score

    def _cached(self, task_id: str) -> PriorityScore | None:
        cached = self.cache.get(task_id)
        if cached is None:
            self.metrics.increment("cache_misses")
            return None
        self.metrics.increment("cache_hits")
        logfire.info("Priority cache hit", task_id=task_id)
        return cached

    def _fallback(self, task: Task, exc: BaseException | None) -> PriorityScore:
        self.metrics.increment("fallbacks")
        logfire.error(
            "Scoring failed, using fallback score",
            task_id=task.id,
            error_type=type(exc).__name__ if exc else None,
            error=str(exc) if exc else None,
        )
        now = self._clock()
        try:
            return fallback_score(task, now)
        except Exception as fallback_exc:
            logfire.error(
                "Fallback scoring failed, using neutral score",
                task_id=task.id,
                error=str(fallback_exc),
            )
            return PriorityScore(
                impact_score=NEUTRAL_SCORE,
                effort_score=NEUTRAL_SCORE,
                urgency_score=NEUTRAL_SCORE,
                dependency_score=NEUTRAL_SCORE,
                workload_score=NEUTRAL_SCORE,
                overall=NEUTRAL_SCORE,
                confidence=FALLBACK_CONFIDENCE,
                last_updated=now,
            )

    # -----------------------------------------------------------------
    # Batch
    # -----------------------------------------------------------------

    async def calculate_batch_priority_scores(
        self,
        tasks: Sequence[Task],
        user_id: str,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, PriorityScore]:
        """
        Score many tasks under the provider's rate limits.

        Tasks are scored in list order, group by group, one at a time.
        Nested subtasks are scored too, each right after its parent. The
        task list doubles as the context for dependencies and workload.

        Args:
            tasks: Tasks to score.
            user_id: Owner whose history and workload apply.
            on_progress: Called with (completed, total) after every task,
                cached or computed. Cached tasks are reported first, during
                the cache pass; a batch without cache hits reports (0, total)
                once before scoring starts.
            cancel_event: When set, scoring stops before the next task
                and the scores gathered so far are returned.

        Returns:
            Mapping of task id to score, in the order of the flattened
            task list.
        """
        cfg = self.batch_config
        tasks = list(index_tasks(tasks).values())
        total = len(tasks)
        scores: dict[str, PriorityScore] = {}
        pending: list[Task] = []

        with logfire.span("calculate_batch_priority_scores", total=total):
            for task in tasks:
                cached = self._cached(task.id)
                if cached is None:
                    pending.append(task)
                    continue
                scores[task.id] = cached
                if on_progress is not None:
                    on_progress(len(scores), total)

            completed = len(scores)
            logfire.info(
                "Batch cache pass done",
                cached=completed,
                pending=len(pending),
            )
            if on_progress is not None and completed == 0:
                on_progress(completed, total)

            groups = list(chunked(pending, cfg.batch_size))
            for group_index, group in enumerate(groups):
                for task_index, task in enumerate(group):
                    if cancel_event is not None and cancel_event.is_set():
                        logfire.info(
                            "Batch scoring cancelled",
                            completed=completed,
                            total=total,
                        )
                        return self._in_order(tasks, scores)

                    scores[task.id] = await self._score_with_retry(
                        task, tasks, user_id
                    )
                    completed += 1
                    if on_progress is not None:
                        on_progress(completed, total)

                    if task_index < len(group) - 1:
                        await asyncio.sleep(cfg.task_delay)

                if group_index < len(groups) - 1:
                    await asyncio.sleep(cfg.batch_delay)

        return self._in_order(tasks, scores)

    async def _score_with_retry(
        self,
        task: Task,
        all_tasks: Sequence[Task],
        user_id: str,
    ) -> PriorityScore:
        """Compute a score, backing off on rate limits. Never raises."""
        retry = self.batch_config.retry
        for attempt in range(1, retry.max_attempts + 1):
            try:
                return await self._compute_score(task, all_tasks, user_id)
            except Exception as exc:
                if is_rate_limited(exc) and attempt < retry.max_attempts:
                    delay = backoff_delay(attempt, retry)
                    self.metrics.increment("rate_limit_retries")
                    logfire.warn(
                        "Rate limited, backing off",
                        task_id=task.id,
                        attempt=attempt,
                        delay_seconds=delay,
                    )
                    await asyncio.sleep(delay)
                    continue
                return self._fallback(task, exc)
        return self._fallback(task, None)

    @staticmethod
    def _in_order(
        tasks: Sequence[Task],
        scores: dict[str, PriorityScore],
    ) -> dict[str, PriorityScore]:
        return {t.id: scores[t.id] for t in tasks if t.id in scores}

    # -----------------------------------------------------------------
    # Maintenance
    # -----------------------------------------------------------------

    def clear_expired_cache(self) -> None:
        """Reclaim memory held by expired cache entries."""
        self.cache.clear_expired()

    def update_historical_pattern(
        self,
        user_id: str,
        completed_task: Task,
        actual_hours: float,
    ) -> None:
        """Record a completed task in the user's history."""
        self.history.record_completion(user_id, completed_task, actual_hours)

    def populate_cached_scores(self, tasks: Sequence[Task]) -> list[Task]:
        """
        Attach fresh cached scores to tasks and subtasks that lack one.

        No scoring is performed. Returns copies; tasks without a cached
        score are returned as they are.
        """
        result = []
        for task in tasks:
            updated = self._attach_cached(task)
            subtasks = [self._attach_cached(sub) for sub in updated.subtasks]
            if any(a is not b for a, b in zip(subtasks, updated.subtasks)):
                updated = updated.model_copy(update={"subtasks": subtasks})
            result.append(updated)
        return result

    def _attach_cached(self, task: Task) -> Task:
        if task.priority_score is not None:
            return task
        cached = self.cache.get(task.id)
        if cached is None:
            return task
        return with_priority_score(task, cached)


# Default engine (created lazily for convenience)
_default_engine: PriorityEngine | None = None


def get_default_engine() -> PriorityEngine:
    """Get or create the process-wide default engine."""
    global _default_engine
    if _default_engine is None:
        _default_engine = PriorityEngine()
    return _default_engine
