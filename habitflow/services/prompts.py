"""
Prompt construction for entity generation.

Templates are jinja2 source strings rendered with ``StrictUndefined`` so a
missing variable fails loudly instead of producing a silently truncated
prompt. The rendered prompt carries the template text and the context it
was rendered from; together they form the cache fingerprint input.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from jinja2 import Environment, StrictUndefined, TemplateError

logger = logging.getLogger(__name__)


def _to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str, indent=2)


def build_environment() -> Environment:
    env = Environment(undefined=StrictUndefined, autoescape=False, trim_blocks=True, lstrip_blocks=True)
    env.filters["to_json"] = _to_json
    return env


@dataclass(frozen=True)
class RenderedPrompt:
    template: str
    context: Dict[str, Any]
    text: str


class PromptBuilder:
    """Renders the create and update prompts for one entity type."""

    def __init__(self, create_template: str, update_template: str, env: Optional[Environment] = None) -> None:
        self.env = env or build_environment()
        self.create_template = create_template
        self.update_template = update_template

    def _render(self, source: str, context: Dict[str, Any]) -> RenderedPrompt:
        try:
            text = self.env.from_string(source).render(**context)
        except TemplateError as e:
            logger.error("Prompt rendering failed: %s", e)
            raise
        return RenderedPrompt(template=source, context=context, text=text)

    def build_create(
        self,
        user_prompt: Optional[str],
        fields: Optional[Mapping[str, Any]] = None,
        item_index: Optional[int] = None,
    ) -> RenderedPrompt:
        context: Dict[str, Any] = {
            "user_prompt": user_prompt or "",
            "fields": dict(fields or {}),
        }
        # only present for multi-item batches; templates test `item_index is defined`
        if item_index is not None:
            context["item_index"] = item_index
        return self._render(self.create_template, context)

    def build_batch(
        self,
        user_prompt: Optional[str],
        count: int,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> RenderedPrompt:
        """Create prompt asking for ``count`` items in a single reply; templates test `count is defined`."""
        context: Dict[str, Any] = {
            "user_prompt": user_prompt or "",
            "fields": dict(fields or {}),
            "count": count,
        }
        return self._render(self.create_template, context)

    def build_update(
        self,
        existing: Mapping[str, Any],
        requested: Optional[Mapping[str, Any]] = None,
        user_prompt: Optional[str] = None,
    ) -> RenderedPrompt:
        context = {
            "user_prompt": user_prompt or "",
            "existing": dict(existing),
            "requested": dict(requested or {}),
        }
        return self._render(self.update_template, context)
