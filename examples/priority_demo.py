import asyncio
import os
from datetime import datetime
from datetime import timedelta

from priority_engine import Dependency
from priority_engine import DependencyType
from priority_engine import EffortLevel
from priority_engine import JsonFileHistoricalPatternStore
from priority_engine import JsonFilePriorityCache
from priority_engine import Priority
from priority_engine import PriorityEngine
from priority_engine import Task
from priority_engine import TaskAnalysis
from priority_engine import get_priority_recommendations
from priority_engine import score_status


async def main() -> None:
    """
    Demo of batch priority scoring over a small task list.

    Set INFERENCE_API_KEY to score impact and effort with the model;
    without it the heuristics are used and no network calls are made.
    """
    print("=== Priority Engine Demo ===")

    now = datetime.now()
    tasks = [
        Task(
            id="release",
            title="Cut the 2.0 release",
            priority=Priority.HIGH,
            due_date=now + timedelta(days=2),
            estimated_time="6h",
            owner_id="demo-user",
            dependencies=[
                Dependency(task_id="changelog", type=DependencyType.BLOCKED_BY)
            ],
        ),
        Task(
            id="changelog",
            title="Write the changelog",
            estimated_time="1h",
            effort_level=EffortLevel.LOW,
            owner_id="demo-user",
            dependencies=[
                Dependency(task_id="release", type=DependencyType.BLOCKS)
            ],
        ),
        Task(
            id="refactor",
            title="Refactor the settings page",
            priority=Priority.LOW,
            estimated_time="3d",
            owner_id="demo-user",
            analysis=TaskAnalysis(difficulty="Hard - touches every form"),
        ),
    ]

    # 1. Configuration
    cache = JsonFilePriorityCache("priority_cache.json", autosave=False)
    history = JsonFileHistoricalPatternStore("priority_history.json")
    engine = PriorityEngine(cache=cache, history=history)
    mode_str = "model" if engine.inference.is_configured else "heuristics only"
    print(f"Inference: {mode_str}")

    # 2. Score the batch
    scores = await engine.calculate_batch_priority_scores(
        tasks,
        "demo-user",
        on_progress=lambda done, total: print(f"  scored {done}/{total}"),
    )
    cache.flush()

    # 3. Results
    print("\n--- Scores ---")
    for task_id, score in scores.items():
        print(
            f"{task_id:<10} overall={score.overall:>3} "
            f"impact={score.impact_score:>3} effort={score.effort_score:>3} "
            f"urgency={score.urgency_score:>3} confidence={score.confidence}"
        )

    # 4. Recommendations
    scored_tasks = engine.populate_cached_scores(tasks)
    recs = get_priority_recommendations(scored_tasks)
    print("\n--- Recommendations ---")
    print(f"Top:        {[t.id for t in recs.top_priority]}")
    print(f"Quick wins: {[t.id for t in recs.quick_wins]}")
    print(f"Urgent:     {[t.id for t in recs.urgent]}")
    print(f"Blockers:   {[t.id for t in recs.blockers]}")

    first = scored_tasks[0]
    print(f"\n'{first.id}': {score_status(first.priority_score).message}")

    # 5. Record a completion for next time
    engine.update_historical_pattern("demo-user", tasks[1], actual_hours=0.75)
    print(f"\nCache saved to: {os.path.abspath('priority_cache.json')}")
    print(f"Metrics: {engine.metrics.summary()['counters']}")


if __name__ == "__main__":
    asyncio.run(main())
