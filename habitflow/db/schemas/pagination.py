"""Pagination descriptor and page envelope shared by all repositories."""
import math
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

from habitflow.utils.enums import SortOrder

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10

T = TypeVar("T")


def _coerce_int(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class PaginationParams(BaseModel):
    """Requested page; out-of-range values are clamped instead of rejected."""

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    sort_by: Optional[str] = None
    sort_order: SortOrder = SortOrder.asc

    @field_validator("page", mode="before")
    @classmethod
    def _clamp_page(cls, value: Any) -> int:
        return max(1, _coerce_int(value, 1))

    @field_validator("page_size", mode="before")
    @classmethod
    def _clamp_page_size(cls, value: Any) -> int:
        return max(MIN_PAGE_SIZE, min(MAX_PAGE_SIZE, _coerce_int(value, DEFAULT_PAGE_SIZE)))

    @field_validator("sort_order", mode="before")
    @classmethod
    def _normalize_sort_order(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() == "desc":
            return SortOrder.desc
        if isinstance(value, SortOrder):
            return value
        return SortOrder.asc

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def total_pages_for(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size else 0


class Page(BaseModel, Generic[T]):
    items: List[T] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total_pages: int = 0
