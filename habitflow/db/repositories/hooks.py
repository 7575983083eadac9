"""
Lifecycle hooks for entity repositories.

Subclass ``RepositoryHooks`` and override the points you need; every
default is an identity pass-through. Overrides may be plain or ``async``.
"""
from __future__ import annotations

import inspect
from typing import Any, Dict, List, Optional

from habitflow.db.schemas.pagination import Page


async def maybe_await(value: Any) -> Any:
    """Await ``value`` when a hook returned an awaitable, else pass it through."""
    if inspect.isawaitable(value):
        return await value
    return value


class RepositoryHooks:
    def before_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return data

    def after_create(self, record: Any) -> Any:
        return record

    def before_update(self, record_id: Optional[Any], data: Dict[str, Any]) -> Dict[str, Any]:
        # record_id is None for filter-wide patches
        return data

    def after_update(self, record: Any) -> Any:
        return record

    def before_delete(self, record_id: Any) -> bool:
        """Return False to veto the delete."""
        return True

    def after_delete(self, record: Any) -> Any:
        return record

    def before_query(self, filter_set: Any) -> Any:
        return filter_set

    def after_query(self, records: List[Any]) -> List[Any]:
        return records

    def after_pagination(self, page: Page) -> Page:
        return page
