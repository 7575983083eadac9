"""
Filter compilation.

Turns an ordered list of field/operator/value conditions into per-field
predicates and renders them as SQLAlchemy clauses for a mapped model.

Merge rules:
- ``eq`` replaces whatever was built for the field so far.
- every other operator accumulates into the field's ``FieldConstraints``,
  so ``gte`` + ``lte`` on one field form a range.
- a non-``eq`` operator that lands on a field currently holding an ``eq``
  drops the equality (logged as a warning).
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field as dc_field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field
from sqlalchemy import and_

from habitflow.exceptions import UnknownFieldError
from habitflow.utils.enums import SortOrder

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class FilterOperator(str, Enum):
    eq = "eq"
    neq = "neq"
    gt = "gt"
    gte = "gte"
    lt = "lt"
    lte = "lte"
    like = "like"
    in_ = "in"


class FilterCondition(BaseModel):
    field: str
    operator: FilterOperator = FilterOperator.eq
    value: Any = None


class FilterSet(BaseModel):
    conditions: List[FilterCondition] = Field(default_factory=list)
    sort_by: Optional[str] = None
    sort_order: SortOrder = SortOrder.desc
    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)

    def with_condition(self, field: str, operator: Union[FilterOperator, str], value: Any) -> "FilterSet":
        """Return a copy with one more condition appended."""
        extra = FilterCondition(field=field, operator=FilterOperator(operator), value=value)
        return self.model_copy(update={"conditions": [*self.conditions, extra]})


def normalize_field_name(name: str) -> str:
    """camelCase -> snake_case; snake_case names pass through unchanged."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any


@dataclass
class FieldConstraints:
    field: str
    neq: Any = None
    gt: Any = None
    gte: Any = None
    lt: Any = None
    lte: Any = None
    like: Optional[str] = None
    in_: Optional[List[Any]] = None
    # which parts were set explicitly (a None bound is never implied)
    present: set = dc_field(default_factory=set)

    def apply(self, operator: FilterOperator, value: Any) -> None:
        if operator is FilterOperator.in_:
            value = list(value) if isinstance(value, (list, tuple, set, frozenset)) else [value]
        attr = "in_" if operator is FilterOperator.in_ else operator.value
        setattr(self, attr, value)
        self.present.add(attr)


Predicate = Union[Eq, FieldConstraints]


@dataclass
class CompiledFilter:
    predicates: Dict[str, Predicate] = dc_field(default_factory=dict)
    sort_by: Optional[str] = None
    sort_order: SortOrder = SortOrder.desc
    limit: Optional[int] = None
    offset: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.predicates

    def to_clauses(self, model) -> list:
        """Render predicates as SQLAlchemy boolean expressions for ``model``."""
        clauses = []
        for name, predicate in self.predicates.items():
            column = getattr(model, name)
            if isinstance(predicate, Eq):
                if predicate.value is None:
                    clauses.append(column.is_(None))
                else:
                    clauses.append(column == predicate.value)
                continue
            parts = []
            for attr in ("neq", "gt", "gte", "lt", "lte", "like", "in_"):
                if attr not in predicate.present:
                    continue
                value = getattr(predicate, attr)
                if attr == "neq":
                    parts.append(column.is_not(None) if value is None else column != value)
                elif attr == "gt":
                    parts.append(column > value)
                elif attr == "gte":
                    parts.append(column >= value)
                elif attr == "lt":
                    parts.append(column < value)
                elif attr == "lte":
                    parts.append(column <= value)
                elif attr == "like":
                    parts.append(column.like(f"%{value}%"))
                else:
                    parts.append(column.in_(value))
            if len(parts) == 1:
                clauses.append(parts[0])
            elif parts:
                clauses.append(and_(*parts))
        return clauses


def compile_filters(filter_set: Optional[FilterSet], available_fields: Iterable[str]) -> CompiledFilter:
    """Compile ``filter_set`` against the entity's ``available_fields``."""
    available = set(available_fields)
    compiled = CompiledFilter()
    if filter_set is None:
        return compiled

    for condition in filter_set.conditions:
        name = normalize_field_name(condition.field)
        if name not in available:
            raise UnknownFieldError(condition.field, available)

        if condition.operator is FilterOperator.eq:
            compiled.predicates[name] = Eq(name, condition.value)
            continue

        current = compiled.predicates.get(name)
        if isinstance(current, Eq):
            logger.warning(
                "Filter on '%s': '%s' after 'eq' discards the equality condition",
                name,
                condition.operator.value,
            )
            current = None
        if current is None:
            current = FieldConstraints(name)
            compiled.predicates[name] = current
        current.apply(condition.operator, condition.value)

    if filter_set.sort_by:
        sort_name = normalize_field_name(filter_set.sort_by)
        if sort_name not in available:
            raise UnknownFieldError(filter_set.sort_by, available)
        compiled.sort_by = sort_name
    compiled.sort_order = filter_set.sort_order
    compiled.limit = filter_set.limit
    compiled.offset = filter_set.offset
    return compiled
