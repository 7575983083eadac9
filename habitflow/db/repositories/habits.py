"""Habit repository."""
from habitflow.db import models, schemas

from .base import EntityRepository


class HabitRepository(EntityRepository):
    model = models.Habit
    schema = schemas.Habit
    resource_name = "habit"
