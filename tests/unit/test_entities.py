import pytest

from habitflow.entities import HabitBehavior, PomodoroBehavior, TodoBehavior
from habitflow.exceptions import ValidationError


def test_create_requires_title():
    with pytest.raises(ValidationError) as exc:
        TodoBehavior().validate({"description": "no title"})
    assert "title" in str(exc.value)


def test_invalid_choice_rejected():
    with pytest.raises(ValidationError):
        TodoBehavior().validate({"title": "x", "priority": "whenever"})


def test_non_mapping_rejected():
    with pytest.raises(ValidationError):
        HabitBehavior().validate(["not", "a", "dict"])


def test_create_fills_schema_defaults():
    data = HabitBehavior().prepare({"name": "  Read  "})
    assert data["name"] == "Read"
    assert data["frequency"] == "daily"
    assert data["reward_points"] == 1
    assert "description" not in data


def test_update_keeps_only_supplied_fields():
    assert TodoBehavior().validate({"status": "completed"}, is_update=True) == {"status": "completed"}


def test_update_allows_empty_payload():
    assert HabitBehavior().validate({}, is_update=True) == {}


def test_merge_generated_prefers_generated_non_null():
    merged = TodoBehavior().merge_generated({"title": "mine", "priority": "low"}, {"title": "ai", "priority": None})
    assert merged == {"title": "ai", "priority": "low"}


def test_pomodoro_defaults():
    data = PomodoroBehavior().prepare({"title": "Deep work", "status": "completed"})
    assert data["duration"] == 25
    assert data["start_time"] is not None
    assert data["end_time"] is not None


def test_completed_todo_gets_completion_time():
    data = TodoBehavior().prepare({"title": "done already", "status": "completed"})
    assert data["completed_at"] is not None
