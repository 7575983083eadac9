"""
Generic owner-scoped repository.

Every query and mutation is ANDed with ``user_id == owner_id``. Rows never
leave the repository as ORM objects: they are converted to the entity's
pydantic read model (``model_validate(..., from_attributes=True)``) so
callers get plain, detached data.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Type, Union

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from habitflow.db.filters import CompiledFilter, FilterOperator, FilterSet, compile_filters
from habitflow.db.models import now_utc
from habitflow.db.schemas.pagination import Page, PaginationParams, total_pages_for
from habitflow.exceptions import NotFoundError, ValidationError
from habitflow.utils.enums import SortOrder

from .hooks import RepositoryHooks, maybe_await

logger = logging.getLogger(__name__)

Payload = Union[Mapping[str, Any], BaseModel]


class EntityRepository:
    model: Type = None
    schema: Type[BaseModel] = None
    resource_name: str = "record"
    pk_field: str = "id"
    owner_field: str = "user_id"

    def __init__(self, session: AsyncSession, owner_id: str, hooks: Optional[RepositoryHooks] = None):
        if self.model is None or self.schema is None:
            raise TypeError(f"{type(self).__name__} must declare `model` and `schema`")
        self.session = session
        self.owner_id = owner_id
        self.hooks = hooks or RepositoryHooks()

    # ----- helpers -----------------------------------------------------------

    @property
    def available_fields(self) -> List[str]:
        return [column.key for column in self.model.__table__.columns]

    def _purify(self, obj) -> BaseModel:
        return self.schema.model_validate(obj, from_attributes=True)

    @staticmethod
    def _as_dict(data: Payload, exclude_unset: bool = False) -> Dict[str, Any]:
        if isinstance(data, BaseModel):
            return data.model_dump(exclude_unset=exclude_unset)
        return dict(data or {})

    def _column_payload(self, data: Mapping[str, Any], strip: Iterable[str] = ()) -> Dict[str, Any]:
        columns = set(self.available_fields)
        stripped = set(strip)
        payload: Dict[str, Any] = {}
        for key, value in data.items():
            if key in stripped:
                continue
            if key not in columns:
                logger.debug("Dropping non-column key '%s' for %s", key, self.resource_name)
                continue
            payload[key] = value.value if isinstance(value, Enum) else value
        return payload

    def _owned(self):
        return getattr(self.model, self.owner_field) == self.owner_id

    def _select(self, compiled: CompiledFilter, paginate: Optional[PaginationParams] = None):
        stmt = select(self.model).where(self._owned(), *compiled.to_clauses(self.model))
        sort_by = compiled.sort_by
        if sort_by is None and hasattr(self.model, "created_at"):
            sort_by = "created_at"
        if sort_by is not None:
            column = getattr(self.model, sort_by)
            stmt = stmt.order_by(column.desc() if compiled.sort_order == SortOrder.desc else column.asc())
        pk = getattr(self.model, self.pk_field)
        stmt = stmt.order_by(pk.desc() if compiled.sort_order == SortOrder.desc else pk.asc())
        if paginate is not None:
            return stmt.offset(paginate.offset).limit(paginate.page_size)
        if compiled.offset:
            stmt = stmt.offset(compiled.offset)
        if compiled.limit is not None:
            stmt = stmt.limit(compiled.limit)
        return stmt

    async def _get_owned(self, record_id: Any):
        stmt = select(self.model).where(self._owned(), getattr(self.model, self.pk_field) == record_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    def _touch(self, obj) -> None:
        if hasattr(self.model, "updated_at"):
            obj.updated_at = now_utc()

    async def _commit(self, action: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.warning("Rolled back failed %s of %s", action, self.resource_name)
            raise

    # ----- create ------------------------------------------------------------

    async def create(self, data: Payload) -> BaseModel:
        values = await maybe_await(self.hooks.before_create(self._as_dict(data)))
        payload = self._column_payload(values)
        payload[self.owner_field] = self.owner_id
        obj = self.model(**payload)
        self.session.add(obj)
        await self._commit("create")
        await self.session.refresh(obj)
        record = self._purify(obj)
        return await maybe_await(self.hooks.after_create(record))

    async def create_many(self, items: Sequence[Payload]) -> List[BaseModel]:
        """Insert all items in one flush; caller-supplied primary keys are ignored."""
        if not items:
            return []
        objs = []
        for item in items:
            values = await maybe_await(self.hooks.before_create(self._as_dict(item)))
            payload = self._column_payload(values, strip=(self.pk_field,))
            payload[self.owner_field] = self.owner_id
            objs.append(self.model(**payload))
        self.session.add_all(objs)
        await self._commit("create")
        records = []
        for obj in objs:
            records.append(await maybe_await(self.hooks.after_create(self._purify(obj))))
        return records

    # ----- read --------------------------------------------------------------

    async def _query(self, filter_set: Optional[FilterSet]) -> List[BaseModel]:
        filter_set = await maybe_await(self.hooks.before_query(filter_set or FilterSet()))
        compiled = compile_filters(filter_set, self.available_fields)
        result = await self.session.execute(self._select(compiled))
        records = [self._purify(obj) for obj in result.scalars().all()]
        return await maybe_await(self.hooks.after_query(records))

    async def find_by_id(self, record_id: Any) -> Optional[BaseModel]:
        found = await self._query(FilterSet().with_condition(self.pk_field, FilterOperator.eq, record_id))
        return found[0] if found else None

    async def find_one(self, filter_set: Optional[FilterSet] = None) -> Optional[BaseModel]:
        filter_set = (filter_set or FilterSet()).model_copy(update={"limit": 1})
        found = await self._query(filter_set)
        return found[0] if found else None

    async def find_many(self, filter_set: Optional[FilterSet] = None) -> List[BaseModel]:
        return await self._query(filter_set)

    async def get_page_with_filters(
        self,
        pagination: Optional[PaginationParams] = None,
        filter_set: Optional[FilterSet] = None,
        owner_id: Optional[str] = None,
    ) -> Page:
        pagination = pagination or PaginationParams()
        filter_set = filter_set or FilterSet()
        if owner_id is not None:
            filter_set = filter_set.with_condition(self.owner_field, FilterOperator.eq, owner_id)
        if pagination.sort_by:
            filter_set = filter_set.model_copy(
                update={"sort_by": pagination.sort_by, "sort_order": pagination.sort_order}
            )
        filter_set = await maybe_await(self.hooks.before_query(filter_set))
        compiled = compile_filters(filter_set, self.available_fields)

        count_stmt = (
            select(func.count())
            .select_from(self.model)
            .where(self._owned(), *compiled.to_clauses(self.model))
        )
        total = (await self.session.execute(count_stmt)).scalar_one()
        result = await self.session.execute(self._select(compiled, paginate=pagination))
        items = [self._purify(obj) for obj in result.scalars().all()]
        items = await maybe_await(self.hooks.after_query(items))

        page = Page(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=total_pages_for(total, pagination.page_size),
        )
        return await maybe_await(self.hooks.after_pagination(page))

    # ----- update ------------------------------------------------------------

    async def update(self, record_id: Any, data: Payload) -> BaseModel:
        values = await maybe_await(self.hooks.before_update(record_id, self._as_dict(data, exclude_unset=True)))
        payload = self._column_payload(values, strip=(self.pk_field, self.owner_field))
        obj = await self._get_owned(record_id)
        if obj is None:
            raise NotFoundError(self.resource_name, record_id)
        for key, value in payload.items():
            setattr(obj, key, value)
        self._touch(obj)
        await self._commit("update")
        await self.session.refresh(obj)
        return await maybe_await(self.hooks.after_update(self._purify(obj)))

    async def update_many(self, items: Sequence[Mapping[str, Any]]) -> List[BaseModel]:
        """Apply ``{"id", "data"}`` updates in order, skipping items that fail.

        Earlier successes stay committed when a later item fails.
        """
        updated = []
        for item in items:
            record_id = item.get(self.pk_field)
            try:
                updated.append(await self.update(record_id, item.get("data") or {}))
            except (NotFoundError, ValidationError, SQLAlchemyError) as exc:
                logger.warning("Skipping %s %s in batch update: %s", self.resource_name, record_id, exc)
        return updated

    async def patch_many(self, filter_set: Optional[FilterSet], data: Payload) -> List[BaseModel]:
        """Apply one set of column values to every owned row matching ``filter_set``."""
        values = await maybe_await(self.hooks.before_update(None, self._as_dict(data, exclude_unset=True)))
        payload = self._column_payload(values, strip=(self.pk_field, self.owner_field))
        compiled = compile_filters(filter_set, self.available_fields)
        result = await self.session.execute(self._select(compiled))
        objs = list(result.scalars().all())
        for obj in objs:
            for key, value in payload.items():
                setattr(obj, key, value)
            self._touch(obj)
        await self._commit("update")
        records = []
        for obj in objs:
            await self.session.refresh(obj)
            records.append(await maybe_await(self.hooks.after_update(self._purify(obj))))
        return records

    # ----- delete ------------------------------------------------------------

    async def delete(self, record_id: Any) -> Optional[BaseModel]:
        proceed = await maybe_await(self.hooks.before_delete(record_id))
        if proceed is False:
            logger.info("Delete of %s %s vetoed by hook", self.resource_name, record_id)
            return None
        obj = await self._get_owned(record_id)
        if obj is None:
            raise NotFoundError(self.resource_name, record_id)
        record = self._purify(obj)
        await self.session.delete(obj)
        await self._commit("delete")
        return await maybe_await(self.hooks.after_delete(record))

    async def delete_many(self, filter_set: Optional[FilterSet] = None) -> List[BaseModel]:
        compiled = compile_filters(filter_set, self.available_fields)
        result = await self.session.execute(self._select(compiled))
        removed = []
        for obj in result.scalars().all():
            record_id = getattr(obj, self.pk_field)
            if await maybe_await(self.hooks.before_delete(record_id)) is False:
                continue
            removed.append(self._purify(obj))
            await self.session.delete(obj)
        await self._commit("delete")
        return [await maybe_await(self.hooks.after_delete(record)) for record in removed]
