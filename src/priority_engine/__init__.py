"""
Task priority scoring engine.

Multi-factor priority scores combining AI judgments (via pydantic-ai),
deterministic heuristics, per-user history and task dependencies.
"""

from priority_engine._models import get_model
from priority_engine.cache import InMemoryPriorityCache
from priority_engine.cache import JsonFilePriorityCache
from priority_engine.cache import PriorityCache
from priority_engine.engine import BatchConfig
from priority_engine.engine import PriorityEngine
from priority_engine.engine import get_default_engine
from priority_engine.estimation import parse_estimated_time
from priority_engine.estimation import urgency_score
from priority_engine.history import HistoricalPatternStore
from priority_engine.history import JsonFileHistoricalPatternStore
from priority_engine.inference import InferenceClient
from priority_engine.inference import ScoreParseError
from priority_engine.models import Dependency
from priority_engine.models import DependencyType
from priority_engine.models import EffortLevel
from priority_engine.models import HistoricalPattern
from priority_engine.models import ImpactLevel
from priority_engine.models import Priority
from priority_engine.models import PriorityScore
from priority_engine.models import Task
from priority_engine.models import TaskAnalysis
from priority_engine.models import TaskStatus
from priority_engine.models import flatten_tasks
from priority_engine.models import index_tasks
from priority_engine.recommendations import get_priority_recommendations
from priority_engine.recommendations import score_status
from priority_engine.recommendations import should_calculate_priority_score
from priority_engine.retry import RateLimitedError
from priority_engine.retry import RetryConfig
from priority_engine.scoring import ScoringWeights

__all__ = [
    "get_model",
    # Engine
    "PriorityEngine",
    "BatchConfig",
    "RetryConfig",
    "ScoringWeights",
    "get_default_engine",
    # Records
    "Task",
    "TaskAnalysis",
    "TaskStatus",
    "Priority",
    "ImpactLevel",
    "EffortLevel",
    "Dependency",
    "DependencyType",
    "PriorityScore",
    "HistoricalPattern",
    "flatten_tasks",
    "index_tasks",
    # Collaborators
    "PriorityCache",
    "InMemoryPriorityCache",
    "JsonFilePriorityCache",
    "HistoricalPatternStore",
    "JsonFileHistoricalPatternStore",
    "InferenceClient",
    # Estimation
    "parse_estimated_time",
    "urgency_score",
    # Views
    "score_status",
    "should_calculate_priority_score",
    "get_priority_recommendations",
    # Errors
    "RateLimitedError",
    "ScoreParseError",
]
__version__ = "0.1.0"
