"""Entity behaviors: validation, defaults, prompts and parsing per entity type."""

from .base import EntityBehavior
from .habits import HabitBehavior
from .todos import TodoBehavior
from .pomodoros import PomodoroBehavior

__all__ = ["EntityBehavior", "HabitBehavior", "TodoBehavior", "PomodoroBehavior"]
