"""
Pomodoro repository.

A session moved to ``completed`` gets its ``end_time`` stamped when the
caller did not provide one.
"""
from typing import Any, Dict, Optional

from habitflow.db import models, schemas
from habitflow.db.models import now_utc
from habitflow.utils.enums import PomodoroStatus

from .base import EntityRepository
from .hooks import RepositoryHooks


class PomodoroHooks(RepositoryHooks):
    def before_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("start_time") is None:
            data = {**data, "start_time": now_utc()}
        return data

    def before_update(self, record_id: Optional[Any], data: Dict[str, Any]) -> Dict[str, Any]:
        status = data.get("status")
        if status in (PomodoroStatus.completed, PomodoroStatus.completed.value) and not data.get("end_time"):
            data = {**data, "end_time": now_utc()}
        return data


class PomodoroRepository(EntityRepository):
    model = models.Pomodoro
    schema = schemas.Pomodoro
    resource_name = "pomodoro"

    def __init__(self, session, owner_id, hooks: Optional[RepositoryHooks] = None):
        super().__init__(session, owner_id, hooks or PomodoroHooks())
