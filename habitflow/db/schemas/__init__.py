"""
Domain-split Pydantic schemas with a package-level aggregator.

Each entity type carries its own explicit field sets: a Create model
(required fields enforced), an Update model (all optional) and a read
model built from ORM rows.
"""

from .habits import HabitBase, HabitCreate, HabitUpdate, Habit
from .todos import TodoBase, TodoCreate, TodoUpdate, Todo
from .pomodoros import PomodoroBase, PomodoroCreate, PomodoroUpdate, Pomodoro
from .llm_cache import CacheRecord
from .pagination import PaginationParams, Page, total_pages_for
from .results import GenerationRequest, OperationResult

__all__ = [
    "HabitBase",
    "HabitCreate",
    "HabitUpdate",
    "Habit",
    "TodoBase",
    "TodoCreate",
    "TodoUpdate",
    "Todo",
    "PomodoroBase",
    "PomodoroCreate",
    "PomodoroUpdate",
    "Pomodoro",
    "CacheRecord",
    "PaginationParams",
    "Page",
    "total_pages_for",
    "GenerationRequest",
    "OperationResult",
]
