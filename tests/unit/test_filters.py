import logging

import pytest

from habitflow.db import models
from habitflow.db.filters import (
    Eq,
    FieldConstraints,
    FilterCondition,
    FilterOperator,
    FilterSet,
    compile_filters,
    normalize_field_name,
)
from habitflow.exceptions import UnknownFieldError

HABIT_FIELDS = [c.key for c in models.Habit.__table__.columns]


def _fs(*conds, **kwargs):
    return FilterSet(
        conditions=[FilterCondition(field=f, operator=op, value=v) for f, op, v in conds],
        **kwargs,
    )


def test_eq_overrides_previous_eq():
    compiled = compile_filters(_fs(("status", "eq", "active"), ("status", "eq", "archived")), HABIT_FIELDS)
    assert compiled.predicates["status"] == Eq("status", "archived")


def test_eq_overrides_accumulated_range():
    compiled = compile_filters(
        _fs(("reward_points", "gte", 1), ("reward_points", "lte", 5), ("reward_points", "eq", 3)),
        HABIT_FIELDS,
    )
    assert compiled.predicates["reward_points"] == Eq("reward_points", 3)


def test_range_operators_merge_into_one_predicate():
    compiled = compile_filters(_fs(("reward_points", "gte", 2), ("reward_points", "lte", 8)), HABIT_FIELDS)
    pred = compiled.predicates["reward_points"]
    assert isinstance(pred, FieldConstraints)
    assert (pred.gte, pred.lte) == (2, 8)
    assert pred.present == {"gte", "lte"}


def test_non_eq_after_eq_discards_equality(caplog):
    with caplog.at_level(logging.WARNING, logger="habitflow.db.filters"):
        compiled = compile_filters(_fs(("reward_points", "eq", 3), ("reward_points", "gt", 1)), HABIT_FIELDS)
    pred = compiled.predicates["reward_points"]
    assert isinstance(pred, FieldConstraints)
    assert pred.gt == 1
    assert pred.present == {"gt"}
    assert "discards the equality" in caplog.text


def test_in_wraps_scalar():
    compiled = compile_filters(_fs(("status", FilterOperator.in_, "active")), HABIT_FIELDS)
    assert compiled.predicates["status"].in_ == ["active"]


def test_unknown_field_rejected():
    with pytest.raises(UnknownFieldError) as exc:
        compile_filters(_fs(("nope", "eq", 1)), HABIT_FIELDS)
    assert "nope" in str(exc.value)


def test_unknown_sort_field_rejected():
    with pytest.raises(UnknownFieldError):
        compile_filters(FilterSet(sort_by="missing"), HABIT_FIELDS)


@pytest.mark.parametrize(
    "raw,expected",
    [("rewardPoints", "reward_points"), ("createdAt", "created_at"), ("user_id", "user_id"), ("name", "name")],
)
def test_camel_case_field_names_normalized(raw, expected):
    assert normalize_field_name(raw) == expected


def test_camel_case_condition_compiles():
    compiled = compile_filters(_fs(("rewardPoints", "gt", 0)), HABIT_FIELDS)
    assert "reward_points" in compiled.predicates


def test_empty_filter_compiles_to_nothing():
    assert compile_filters(FilterSet(), HABIT_FIELDS).is_empty
    assert compile_filters(None, HABIT_FIELDS).to_clauses(models.Habit) == []


def test_clauses_render_null_and_like():
    compiled = compile_filters(
        _fs(("description", "eq", None), ("name", "like", "read")),
        HABIT_FIELDS,
    )
    rendered = [str(c) for c in compiled.to_clauses(models.Habit)]
    assert "habits.description IS NULL" in rendered
    assert any("LIKE" in r for r in rendered)


def test_with_condition_appends_without_mutating():
    base = FilterSet()
    extended = base.with_condition("status", "eq", "active")
    assert base.conditions == []
    assert extended.conditions[0].operator is FilterOperator.eq
