"""
Status and choice constants for the productivity entities.

Centralized definitions so schemas, behaviors and prompts agree on the
allowed values.
"""

from enum import Enum
from typing import FrozenSet


class HabitFrequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    scenario = "scenario"


class HabitStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    archived = "archived"


class TodoStatus(str, Enum):
    active = "active"
    completed = "completed"
    archived = "archived"


class TodoPriority(str, Enum):
    urgent = "urgent"
    high = "high"
    medium = "medium"
    low = "low"


class PomodoroStatus(str, Enum):
    running = "running"
    paused = "paused"
    completed = "completed"
    canceled = "canceled"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


def choice_values(enum_cls) -> FrozenSet[str]:
    """Return the raw string values of an enum, for prompts and messages."""
    return frozenset(member.value for member in enum_cls)
