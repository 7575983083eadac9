"""
Domain-split SQLAlchemy models with a package-level aggregator.

Exposes `Base`, `now_utc`, and all ORM classes.
"""

from .base import Base, now_utc  # re-export

# Domain models
from .habits import Habit
from .todos import Todo
from .pomodoros import Pomodoro
from .llm_cache import LLMCacheRecord

__all__ = [
    # base
    "Base",
    "now_utc",
    # entities
    "Habit",
    "Todo",
    "Pomodoro",
    # generation cache
    "LLMCacheRecord",
]
