import json

import pytest

from habitflow.config import GenerationSettings
from habitflow.db.filters import FilterSet
from habitflow.db.repositories import HabitRepository, TodoRepository
from habitflow.db.repositories.todos import TodoHooks
from habitflow.db.schemas import GenerationRequest, PaginationParams
from habitflow.entities import HabitBehavior, TodoBehavior
from habitflow.exceptions import ExternalCallError
from habitflow.services import GenerationOrchestrator, MockTextGenerator, ResponseCache
from habitflow.utils.feature_flags import refresh_feature_flag_cache

SETTINGS = GenerationSettings(cache_ttl_minutes=240, cache_max_entries=100, default_batch_size=1, max_batch_size=10)


def _todo(title, **extra):
    return json.dumps({"title": title, **extra})


@pytest.fixture
def cache(session_factory):
    return ResponseCache.from_settings(session_factory, SETTINGS)


@pytest.fixture
def make_todo_orchestrator(session, owner_id, cache):
    def _make(responses=None, generator=None, use_cache=True):
        gen = generator or MockTextGenerator(responses)
        return GenerationOrchestrator(
            TodoRepository(session, owner_id),
            TodoBehavior(),
            gen,
            cache if use_cache else None,
            SETTINGS,
        )

    return _make


def _request(owner_id, **kwargs):
    return GenerationRequest(owner_id=owner_id, **kwargs)


async def test_plain_create_single(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator()
    result = await orch.handle_create(_request(owner_id, data={"title": "Buy milk"}))
    assert result.success
    assert result.data.title == "Buy milk"
    assert result.data.priority == "medium"
    assert orch.generator.call_count == 0


async def test_plain_create_invalid_single(make_todo_orchestrator, owner_id):
    result = await make_todo_orchestrator().handle_create(_request(owner_id, data={"description": "no title"}))
    assert not result.success
    assert "title" in result.error


async def test_batch_create_drops_invalid_items(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator()
    result = await orch.handle_create(
        _request(owner_id, data=[{"title": "a"}, {"priority": "high"}, {"title": "c", "id": 77}])
    )
    assert result.success
    assert [t.title for t in result.data] == ["a", "c"]
    assert 77 not in [t.id for t in result.data]


async def test_batch_create_all_invalid_fails(make_todo_orchestrator, owner_id):
    result = await make_todo_orchestrator().handle_create(_request(owner_id, data=[{}, {"title": ""}]))
    assert not result.success
    assert "invalid" in result.error


async def test_owner_mismatch_rejected(make_todo_orchestrator):
    result = await make_todo_orchestrator().handle_create(_request("intruder", data={"title": "x"}))
    assert not result.success
    assert "owner" in result.error


async def test_auto_generate_happy_path(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator([_todo("Write report", priority="high")])
    result = await orch.handle_create(
        _request(owner_id, auto_generate=True, user_prompt="quarterly report", data={"description": "Q3"})
    )
    assert result.success
    assert result.generated_count == 1
    assert result.data.title == "Write report"
    assert result.data.priority == "high"
    assert result.data.description == "Q3"
    assert "quarterly report" in orch.generator.calls[0]


async def test_identical_request_served_from_cache(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator([_todo("Cached todo")])
    request = _request(owner_id, auto_generate=True, user_prompt="same prompt")
    first = await orch.handle_create(request)
    second = await orch.handle_create(request)
    assert first.success and second.success
    assert orch.generator.call_count == 1
    assert first.data.id != second.data.id
    assert second.data.title == "Cached todo"


async def test_cache_disabled_by_flag(make_todo_orchestrator, owner_id, monkeypatch):
    monkeypatch.setenv("LLM_CACHE_ENABLED", "false")
    refresh_feature_flag_cache()
    orch = make_todo_orchestrator([_todo("Fresh")])
    request = _request(owner_id, auto_generate=True, user_prompt="same prompt")
    await orch.handle_create(request)
    await orch.handle_create(request)
    assert orch.generator.call_count == 2


async def test_batch_generation_skips_bad_item(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator([_todo("one"), "sorry, no idea", _todo("three")])
    result = await orch.handle_create(_request(owner_id, auto_generate=True, user_prompt="plan", batch_size=3))
    assert result.success
    assert result.generated_count == 2
    assert [t.title for t in result.data] == ["one", "three"]
    # item index keeps iterations apart in the cache
    assert orch.generator.call_count == 3


async def test_batch_generation_all_failures(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator(["nope"])
    result = await orch.handle_create(_request(owner_id, auto_generate=True, user_prompt="x", batch_size=2))
    assert not result.success
    assert result.generated_count == 0


class _FailingGenerator(MockTextGenerator):
    async def generate(self, prompt_text, context=None):
        self.calls.append(prompt_text)
        raise ExternalCallError("mock", "rate limited")


async def test_generator_failure_becomes_error_envelope(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator(generator=_FailingGenerator())
    result = await orch.handle_create(_request(owner_id, auto_generate=True, user_prompt="x"))
    assert not result.success
    assert result.generated_count == 0


async def test_generation_disabled_by_flag(make_todo_orchestrator, owner_id, monkeypatch):
    monkeypatch.setenv("LLM_FEATURES_ENABLED", "false")
    refresh_feature_flag_cache()
    orch = make_todo_orchestrator([_todo("never")])
    result = await orch.handle_create(_request(owner_id, auto_generate=True, user_prompt="x"))
    assert not result.success
    assert "disabled" in result.error
    assert orch.generator.call_count == 0


async def test_generate_preview_does_not_persist(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator([_todo("Preview only")])
    result = await orch.generate_preview(_request(owner_id, auto_generate=True, user_prompt="x"))
    assert result.success
    assert result.data["title"] == "Preview only"
    assert await orch.repository.find_many() == []


async def test_update_plain(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator()
    created = (await orch.handle_create(_request(owner_id, data={"title": "draft"}))).data
    result = await orch.handle_update(_request(owner_id, data={"id": created.id, "status": "completed"}))
    assert result.success
    assert result.data.status == "completed"
    assert result.data.completed_at is not None


async def test_update_requires_id(make_todo_orchestrator, owner_id):
    result = await make_todo_orchestrator().handle_update(_request(owner_id, data={"title": "x"}))
    assert not result.success
    assert "id" in result.error


async def test_update_not_found(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator([_todo("unused")])
    result = await orch.handle_update(_request(owner_id, auto_generate=True, user_prompt="x", data={"id": 4242}))
    assert not result.success
    assert "not found" in result.error
    assert orch.generator.call_count == 0


async def test_update_with_generation_merges_fields(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator([json.dumps({"priority": "urgent", "description": "today"})])
    created = (await orch.handle_create(_request(owner_id, data={"title": "taxes"}))).data
    result = await orch.handle_update(
        _request(owner_id, auto_generate=True, user_prompt="make it urgent", data={"id": created.id, "title": "Taxes"})
    )
    assert result.success
    assert result.data.title == "Taxes"
    assert result.data.priority == "urgent"
    assert result.data.description == "today"
    assert '"title": "taxes"' in orch.generator.calls[0]


async def test_update_generation_falls_back_to_raw_text(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator(["Split it into two smaller tasks."])
    created = (await orch.handle_create(_request(owner_id, data={"title": "big task"}))).data
    result = await orch.handle_update(
        _request(owner_id, auto_generate=True, user_prompt="advise", data={"id": created.id})
    )
    assert result.success
    assert result.data.description == "Split it into two smaller tasks."


async def test_batch_update_skips_bad_items(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator()
    created = (await orch.handle_create(_request(owner_id, data=[{"title": "a"}, {"title": "b"}]))).data
    result = await orch.handle_update(
        _request(
            owner_id,
            data=[
                {"id": created[0].id, "priority": "low"},
                {"priority": "high"},
                {"id": 999999, "priority": "high"},
                {"id": created[1].id, "priority": "bogus"},
            ],
        )
    )
    assert result.success
    assert [(t.id, t.priority) for t in result.data] == [(created[0].id, "low")]


async def test_batch_update_nothing_valid(make_todo_orchestrator, owner_id):
    result = await make_todo_orchestrator().handle_update(_request(owner_id, data=[{"title": "no id"}]))
    assert not result.success


async def test_patch_and_batch_patch(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator()
    created = (await orch.handle_create(_request(owner_id, data=[{"title": "a"}, {"title": "b"}, {"title": "c"}]))).data

    single = await orch.handle_patch(created[0].id, {"priority": "urgent"})
    assert single.success and single.data.priority == "urgent"

    many = await orch.handle_batch_patch([created[1].id, created[2].id], {"status": "archived"})
    assert many.success
    assert {t.status for t in many.data} == {"archived"}

    invalid = await orch.handle_batch_patch([created[0].id], {"status": "exploded"})
    assert not invalid.success

    missing = await orch.handle_patch(123456, {"priority": "low"})
    assert not missing.success


async def test_delete_and_batch_delete(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator()
    created = (await orch.handle_create(_request(owner_id, data=[{"title": "a"}, {"title": "b"}, {"title": "c"}]))).data

    deleted = await orch.handle_delete(created[0].id)
    assert deleted.success and deleted.data.id == created[0].id
    assert not (await orch.handle_delete(created[0].id)).success

    batch = await orch.handle_batch_delete([created[1].id, created[2].id])
    assert batch.success and len(batch.data) == 2
    assert not (await orch.handle_batch_delete([])).success


async def test_reads(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator()
    await orch.handle_create(_request(owner_id, data=[{"title": f"t{i}"} for i in range(12)]))
    page = await orch.get_page(PaginationParams(page=2, page_size=5))
    assert page.success
    assert page.data.total == 12 and len(page.data.items) == 5 and page.data.total_pages == 3

    first = page.data.items[0]
    assert (await orch.get_by_id(first.id)).data.title == first.title
    assert not (await orch.get_by_id(10**6)).success

    bad_filter = await orch.get_page(filter_set=FilterSet(sort_by="nonexistent"))
    assert not bad_filter.success


async def test_habit_generation_with_default_mock(session, owner_id, cache):
    orch = GenerationOrchestrator(HabitRepository(session, owner_id), HabitBehavior(), MockTextGenerator(), cache, SETTINGS)
    result = await orch.handle_create(_request(owner_id, auto_generate=True, user_prompt="drink water"))
    assert result.success
    assert result.data.name.startswith("Generated ")
    assert result.data.frequency == "daily"


async def test_no_generator_configured(session, owner_id):
    orch = GenerationOrchestrator(TodoRepository(session, owner_id), TodoBehavior(), None, None, SETTINGS)
    result = await orch.handle_create(_request(owner_id, auto_generate=True, user_prompt="x"))
    assert not result.success


class _SecondInsertBreaksConstraint(TodoHooks):
    def __init__(self):
        self.calls = 0

    def before_create(self, data):
        self.calls += 1
        if self.calls == 2:
            return {**data, "status": "bogus"}
        return data


async def test_batch_generation_survives_database_failure(session, owner_id, cache):
    repository = TodoRepository(session, owner_id, hooks=_SecondInsertBreaksConstraint())
    generator = MockTextGenerator([_todo("one"), _todo("two"), _todo("three")])
    orch = GenerationOrchestrator(repository, TodoBehavior(), generator, cache, SETTINGS)
    result = await orch.handle_create(_request(owner_id, auto_generate=True, user_prompt="plan", batch_size=3))
    assert result.success
    assert result.generated_count == 2
    assert [t.title for t in result.data] == ["one", "three"]
    assert sorted(t.title for t in await repository.find_many()) == ["one", "three"]


async def test_auto_generate_rejects_list_seed_data(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator([_todo("unused")])
    result = await orch.handle_create(
        _request(owner_id, auto_generate=True, user_prompt="x", data=[{"priority": "high"}], batch_size=2)
    )
    assert not result.success
    assert "batch_size" in result.error
    assert orch.generator.call_count == 0
    assert await orch.repository.find_many() == []


async def test_batch_preview_uses_one_generator_call(make_todo_orchestrator, owner_id):
    reply = "Here you go:\n```json\n" + json.dumps(
        [{"title": "a", "id": 5}, {"description": "no title"}, {"title": "c", "priority": "low"}, {"title": "d"}]
    ) + "\n```"
    orch = make_todo_orchestrator([reply])
    result = await orch.generate_batch_preview(
        _request(owner_id, auto_generate=True, user_prompt="weekend chores", batch_size=3, data={"priority": "high"})
    )
    assert result.success
    assert result.generated_count == 2
    assert [item["title"] for item in result.data] == ["a", "c"]
    assert "id" not in result.data[0]
    assert result.data[0]["priority"] == "high"
    assert result.data[1]["priority"] == "low"
    assert orch.generator.call_count == 1
    assert "3 distinct actionable todos" in orch.generator.calls[0]
    assert await orch.repository.find_many() == []


async def test_batch_preview_requires_user_prompt(make_todo_orchestrator, owner_id):
    orch = make_todo_orchestrator([_todo("unused")])
    result = await orch.generate_batch_preview(_request(owner_id, auto_generate=True, batch_size=2))
    assert not result.success
    assert result.generated_count == 0
    assert orch.generator.call_count == 0


async def test_batch_preview_unparseable_reply(make_todo_orchestrator, owner_id):
    result = await make_todo_orchestrator(["no json here"]).generate_batch_preview(
        _request(owner_id, auto_generate=True, user_prompt="x", batch_size=2)
    )
    assert not result.success
