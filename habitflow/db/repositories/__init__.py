"""
Per-entity repository classes built on the generic owner-scoped
``EntityRepository``.
"""

from .hooks import RepositoryHooks, maybe_await
from .base import EntityRepository
from .habits import HabitRepository
from .todos import TodoHooks, TodoRepository
from .pomodoros import PomodoroHooks, PomodoroRepository

__all__ = [
    "RepositoryHooks",
    "maybe_await",
    "EntityRepository",
    "HabitRepository",
    "TodoHooks",
    "TodoRepository",
    "PomodoroHooks",
    "PomodoroRepository",
]
