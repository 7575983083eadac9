import pytest
from jinja2 import UndefinedError

from habitflow.entities import HabitBehavior, TodoBehavior
from habitflow.services.prompts import PromptBuilder
from habitflow.services.response_cache import fingerprint


def test_create_prompt_includes_request_and_fields():
    rendered = TodoBehavior().prompt_builder.build_create("plan my week", {"priority": "high"})
    assert "plan my week" in rendered.text
    assert '"priority": "high"' in rendered.text
    assert "item_index" not in rendered.context


def test_item_index_only_added_when_given():
    builder = HabitBehavior().prompt_builder
    first = builder.build_create("exercise", item_index=0)
    second = builder.build_create("exercise", item_index=1)
    assert first.context["item_index"] == 0
    assert "variation #2" in second.text
    assert fingerprint(first.template, first.context) != fingerprint(second.template, second.context)


def test_update_prompt_renders_existing_record():
    rendered = TodoBehavior().prompt_builder.build_update({"id": 4, "title": "Old"}, {"status": "completed"}, "finish it")
    assert '"title": "Old"' in rendered.text
    assert "finish it" in rendered.text


def test_strict_undefined_fails_loudly():
    builder = PromptBuilder("Hello {{ missing_var }}", "")
    with pytest.raises(UndefinedError):
        builder.build_create("x")


def test_fingerprint_is_deterministic_and_order_sensitive():
    a = fingerprint("tmpl", {"x": 1, "y": 2})
    assert a == fingerprint("tmpl", {"x": 1, "y": 2})
    assert a != fingerprint("tmpl", {"y": 2, "x": 1})
    assert a != fingerprint("other", {"x": 1, "y": 2})
    assert len(a) == 64


def test_batch_prompt_asks_for_an_array():
    single = TodoBehavior().prompt_builder.build_create("clean the house")
    batch = TodoBehavior().prompt_builder.build_batch("clean the house", 4, {"priority": "low"})
    assert batch.context["count"] == 4
    assert "4 distinct actionable todos" in batch.text
    assert "JSON array of 4 objects" in batch.text
    assert "single JSON object" not in batch.text
    assert "single JSON object" in single.text
    assert fingerprint(single.template, single.context) != fingerprint(batch.template, batch.context)
