import pytest

from habitflow.db.schemas import PaginationParams, total_pages_for
from habitflow.utils.enums import SortOrder


@pytest.mark.parametrize("page,expected", [(0, 1), (-5, 1), (3, 3), (None, 1), ("2", 2), ("abc", 1)])
def test_page_is_clamped(page, expected):
    assert PaginationParams(page=page).page == expected


@pytest.mark.parametrize("size,expected", [(0, 1), (-1, 1), (50, 50), (500, 100), (None, 10)])
def test_page_size_is_clamped(size, expected):
    assert PaginationParams(page_size=size).page_size == expected


def test_defaults():
    params = PaginationParams()
    assert (params.page, params.page_size, params.sort_by) == (1, 10, None)
    assert params.sort_order is SortOrder.asc
    assert params.offset == 0


def test_sort_order_normalized():
    assert PaginationParams(sort_order="DESC").sort_order is SortOrder.desc
    assert PaginationParams(sort_order="sideways").sort_order is SortOrder.asc


def test_offset():
    assert PaginationParams(page=3, page_size=20).offset == 40


@pytest.mark.parametrize("total,size,pages", [(0, 10, 0), (10, 10, 1), (21, 10, 3), (1, 100, 1)])
def test_total_pages(total, size, pages):
    assert total_pages_for(total, size) == pages
