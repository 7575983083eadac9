"""
Generation orchestrator.

Coordinates one entity type's create/update/delete flows, optionally
asking a text generator to fill in content. Every entry point returns an
``OperationResult``; no exception escapes to the caller.

Generation path per item:
    prompt -> fingerprint -> cache lookup -> (miss) generator -> cache store
    -> parse -> merge over caller fields -> validate -> persist
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from jinja2 import TemplateError

from habitflow.config import GenerationSettings
from habitflow.db.filters import FilterOperator, FilterSet
from habitflow.db.repositories.base import EntityRepository
from habitflow.db.schemas import GenerationRequest, OperationResult, PaginationParams
from habitflow.exceptions import ExternalCallError, HabitflowError, NotFoundError, ValidationError
from habitflow.utils.feature_flags import llm_cache_enabled, llm_features_enabled

from .llm_providers import BaseTextGenerator
from .prompts import RenderedPrompt
from .response_cache import ResponseCache, fingerprint

if TYPE_CHECKING:
    from habitflow.entities.base import EntityBehavior

logger = logging.getLogger(__name__)

_ITEM_ERRORS = (HabitflowError, TemplateError)


class GenerationOrchestrator:
    def __init__(
        self,
        repository: EntityRepository,
        behavior: "EntityBehavior",
        generator: Optional[BaseTextGenerator] = None,
        cache: Optional[ResponseCache] = None,
        settings: Optional[GenerationSettings] = None,
    ) -> None:
        self.repository = repository
        self.behavior = behavior
        self.generator = generator
        self.cache = cache
        self.settings = settings or GenerationSettings.from_env()

    @property
    def resource(self) -> str:
        return self.behavior.resource_name

    # ----- plumbing ----------------------------------------------------------

    async def _guard(self, action: str, operation: Callable[[], Awaitable[OperationResult]]) -> OperationResult:
        """Run ``operation`` and convert any exception into a failed result."""
        try:
            return await operation()
        except HabitflowError as exc:
            logger.warning("%s %s failed: %s", action, self.resource, exc)
            await self._rollback()
            return OperationResult.fail(str(exc))
        except Exception as exc:
            logger.exception("Unexpected error during %s %s", action, self.resource)
            await self._rollback()
            return OperationResult.fail(f"Failed to {action} {self.resource}: {exc}")

    async def _rollback(self) -> None:
        session = getattr(self.repository, "session", None)
        if session is not None:
            await session.rollback()

    def _check_owner(self, request: GenerationRequest) -> None:
        if request.owner_id != self.repository.owner_id:
            raise ValidationError(self.resource, "request owner does not match repository owner")

    def _batch_size(self, requested: Optional[int]) -> int:
        size = requested or self.settings.default_batch_size
        return max(1, min(size, self.settings.max_batch_size))

    async def _generate_text(self, rendered: RenderedPrompt) -> str:
        """Cache-or-generate for one rendered prompt."""
        use_cache = self.cache is not None and llm_cache_enabled()
        request_hash = fingerprint(rendered.template, rendered.context)
        if use_cache:
            hit = await self.cache.get(request_hash, max_age=self.settings.cache_ttl_seconds)
            if hit is not None:
                logger.debug("Cache hit for %s prompt %s", self.resource, request_hash[:12])
                return hit.response_content
        if self.generator is None:
            raise ExternalCallError("none", "no text generator is configured")
        text = await self.generator.generate(rendered.text, rendered.context)
        if use_cache:
            await self.cache.put(
                request_hash,
                rendered.text,
                self.generator.model_id,
                text,
                owner_id=self.repository.owner_id,
            )
        return text

    async def _generate_fields(
        self, base: Mapping[str, Any], user_prompt: Optional[str], item_index: Optional[int]
    ) -> Dict[str, Any]:
        rendered = self.behavior.prompt_builder.build_create(user_prompt, base, item_index=item_index)
        text = await self._generate_text(rendered)
        generated = self.behavior.output_parser.parse_create(text)
        return self.behavior.prepare(self.behavior.merge_generated(base, generated))

    async def _generate_update(
        self, existing: Any, requested: Mapping[str, Any], user_prompt: Optional[str]
    ) -> Dict[str, Any]:
        existing_fields = existing.model_dump()
        rendered = self.behavior.prompt_builder.build_update(existing_fields, requested, user_prompt)
        text = await self._generate_text(rendered)
        parsed = self.behavior.output_parser.parse_update(text, existing_fields)
        return self.behavior.merge_generated(requested, parsed)

    async def _fetch_existing(self, record_id: Any):
        existing = await self.repository.find_by_id(record_id)
        if existing is None:
            raise NotFoundError(self.resource, record_id)
        return existing

    def _seed_fields(self, request: GenerationRequest) -> Dict[str, Any]:
        """Caller fields every generated item keeps."""
        if isinstance(request.data, list):
            raise ValidationError(
                self.resource, "generation takes one object of seed fields; use batch_size for several items"
            )
        return dict(request.data or {})

    def _generation_disabled(self) -> Optional[OperationResult]:
        if not llm_features_enabled():
            return OperationResult.fail("AI generation is disabled")
        return None

    # ----- create ------------------------------------------------------------

    async def handle_create(self, request: GenerationRequest) -> OperationResult:
        if request.auto_generate:
            disabled = self._generation_disabled()
            if disabled:
                return disabled
            return await self._guard("generate", lambda: self._auto_create(request, persist=True))
        return await self._guard("create", lambda: self._plain_create(request))

    async def _plain_create(self, request: GenerationRequest) -> OperationResult:
        self._check_owner(request)
        data = request.data
        if data is None:
            return OperationResult.fail(f"No {self.resource} data provided")
        if not isinstance(data, list):
            record = await self.repository.create(self.behavior.prepare(data))
            return OperationResult.ok(record)

        valid: List[Dict[str, Any]] = []
        for index, item in enumerate(data):
            try:
                valid.append(self.behavior.prepare(item))
            except ValidationError as exc:
                logger.warning("Dropping invalid %s at index %d: %s", self.resource, index, exc)
        if not valid:
            return OperationResult.fail(f"All {len(data)} {self.resource} items are invalid")
        records = await self.repository.create_many(valid)
        return OperationResult.ok(records)

    async def _auto_create(self, request: GenerationRequest, persist: bool) -> OperationResult:
        self._check_owner(request)
        batch_size = self._batch_size(request.batch_size)
        base = self._seed_fields(request)

        produced: List[Any] = []
        for index in range(batch_size):
            item_index = index if batch_size > 1 else None
            try:
                fields = await self._generate_fields(base, request.user_prompt, item_index)
                produced.append(await self.repository.create(fields) if persist else fields)
            except _ITEM_ERRORS as exc:
                logger.warning("Skipping generated %s %d/%d: %s", self.resource, index + 1, batch_size, exc)
            except Exception:
                logger.exception("Generated %s %d/%d failed", self.resource, index + 1, batch_size)
                await self._rollback()

        count = len(produced)
        if count == 0:
            return OperationResult.fail(f"Failed to generate any {self.resource}", generated_count=0)
        logger.info("Generated %d/%d %s item(s)", count, batch_size, self.resource)
        return OperationResult.ok(produced[0] if count == 1 else produced, generated_count=count)

    async def generate_preview(self, request: GenerationRequest) -> OperationResult:
        """Run the creation pipeline without persisting anything."""
        disabled = self._generation_disabled()
        if disabled:
            return disabled
        return await self._guard("preview", lambda: self._auto_create(request, persist=False))

    async def generate_batch_preview(self, request: GenerationRequest) -> OperationResult:
        """Ask for ``batch_size`` items in one generator reply; nothing is persisted."""
        disabled = self._generation_disabled()
        if disabled:
            return disabled
        return await self._guard("preview", lambda: self._batch_preview(request))

    async def _batch_preview(self, request: GenerationRequest) -> OperationResult:
        self._check_owner(request)
        if not request.user_prompt:
            return OperationResult.fail("user_prompt is required for batch generation", data=[], generated_count=0)
        count = self._batch_size(request.batch_size)
        base = self._seed_fields(request)
        rendered = self.behavior.prompt_builder.build_batch(request.user_prompt, count, base)
        text = await self._generate_text(rendered)

        items: List[Dict[str, Any]] = []
        for index, generated in enumerate(self.behavior.output_parser.parse_batch(text)[:count]):
            generated.pop(self.repository.pk_field, None)
            try:
                items.append(self.behavior.prepare(self.behavior.merge_generated(base, generated)))
            except ValidationError as exc:
                logger.warning("Dropping generated %s at index %d: %s", self.resource, index, exc)

        if not items:
            return OperationResult.fail(f"Failed to generate any {self.resource}", data=[], generated_count=0)
        logger.info("Previewed %d/%d %s item(s) from one reply", len(items), count, self.resource)
        return OperationResult.ok(items, generated_count=len(items))

    # ----- update ------------------------------------------------------------

    async def handle_update(self, request: GenerationRequest) -> OperationResult:
        if request.auto_generate:
            disabled = self._generation_disabled()
            if disabled:
                return disabled
        if isinstance(request.data, list):
            return await self._guard("update", lambda: self._batch_update(request))
        return await self._guard("update", lambda: self._single_update(request))

    async def _single_update(self, request: GenerationRequest) -> OperationResult:
        self._check_owner(request)
        data = dict(request.data or {})
        record_id = data.pop(self.repository.pk_field, None)
        if record_id is None:
            return OperationResult.fail(f"{self.resource} id is required for update")
        if request.auto_generate:
            existing = await self._fetch_existing(record_id)
            data = await self._generate_update(existing, data, request.user_prompt)
        record = await self.repository.update(record_id, self.behavior.prepare(data, is_update=True))
        return OperationResult.ok(record, generated_count=1 if request.auto_generate else None)

    async def _batch_update(self, request: GenerationRequest) -> OperationResult:
        self._check_owner(request)
        pk = self.repository.pk_field
        pending: List[Dict[str, Any]] = []
        for index, item in enumerate(request.data):
            if not isinstance(item, Mapping) or item.get(pk) is None:
                logger.warning("Skipping %s at index %d: missing id", self.resource, index)
                continue
            fields = {k: v for k, v in item.items() if k != pk}
            try:
                if request.auto_generate:
                    existing = await self._fetch_existing(item[pk])
                    fields = await self._generate_update(existing, fields, request.user_prompt)
                pending.append({pk: item[pk], "data": self.behavior.prepare(fields, is_update=True)})
            except _ITEM_ERRORS as exc:
                logger.warning("Skipping %s %s in batch update: %s", self.resource, item[pk], exc)

        if not pending:
            return OperationResult.fail(f"No valid {self.resource} items to update")
        updated = await self.repository.update_many(pending)
        generated = len(updated) if request.auto_generate else None
        if not updated:
            return OperationResult.fail(f"No {self.resource} items were updated", data=[], generated_count=generated)
        return OperationResult.ok(updated, generated_count=generated)

    async def handle_patch(self, record_id: Any, fields: Mapping[str, Any]) -> OperationResult:
        async def _patch() -> OperationResult:
            record = await self.repository.update(record_id, self.behavior.prepare(fields, is_update=True))
            return OperationResult.ok(record)

        return await self._guard("patch", _patch)

    async def handle_batch_patch(self, ids: Sequence[Any], fields: Mapping[str, Any]) -> OperationResult:
        async def _patch_many() -> OperationResult:
            if not ids:
                return OperationResult.fail(f"No {self.resource} ids provided")
            values = self.behavior.prepare(fields, is_update=True)
            filters = FilterSet().with_condition(self.repository.pk_field, FilterOperator.in_, list(ids))
            records = await self.repository.patch_many(filters, values)
            if not records:
                return OperationResult.fail(f"No matching {self.resource} records", data=[])
            return OperationResult.ok(records)

        return await self._guard("patch", _patch_many)

    # ----- delete ------------------------------------------------------------

    async def handle_delete(self, record_id: Any) -> OperationResult:
        async def _delete() -> OperationResult:
            record = await self.repository.delete(record_id)
            if record is None:
                return OperationResult.fail(f"Deletion of {self.resource} {record_id} was skipped")
            return OperationResult.ok(record)

        return await self._guard("delete", _delete)

    async def handle_batch_delete(self, ids: Sequence[Any]) -> OperationResult:
        async def _delete_many() -> OperationResult:
            if not ids:
                return OperationResult.fail(f"No {self.resource} ids provided")
            filters = FilterSet().with_condition(self.repository.pk_field, FilterOperator.in_, list(ids))
            return OperationResult.ok(await self.repository.delete_many(filters))

        return await self._guard("delete", _delete_many)

    # ----- reads -------------------------------------------------------------

    async def get_by_id(self, record_id: Any) -> OperationResult:
        async def _get() -> OperationResult:
            return OperationResult.ok(await self._fetch_existing(record_id))

        return await self._guard("read", _get)

    async def get_page(
        self, pagination: Optional[PaginationParams] = None, filter_set: Optional[FilterSet] = None
    ) -> OperationResult:
        async def _page() -> OperationResult:
            return OperationResult.ok(await self.repository.get_page_with_filters(pagination, filter_set))

        return await self._guard("list", _page)
