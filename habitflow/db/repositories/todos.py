"""
Todo repository.

Completing a todo through ``update`` or ``patch_many`` stamps
``completed_at`` unless the caller supplied one.
"""
from typing import Any, Dict, Optional

from habitflow.db import models, schemas
from habitflow.db.models import now_utc
from habitflow.utils.enums import TodoStatus

from .base import EntityRepository
from .hooks import RepositoryHooks


class TodoHooks(RepositoryHooks):
    def before_update(self, record_id: Optional[Any], data: Dict[str, Any]) -> Dict[str, Any]:
        status = data.get("status")
        if status in (TodoStatus.completed, TodoStatus.completed.value) and not data.get("completed_at"):
            data = {**data, "completed_at": now_utc()}
        return data


class TodoRepository(EntityRepository):
    model = models.Todo
    schema = schemas.Todo
    resource_name = "todo"

    def __init__(self, session, owner_id, hooks: Optional[RepositoryHooks] = None):
        super().__init__(session, owner_id, hooks or TodoHooks())
