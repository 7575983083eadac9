"""
Per-entity behavior plugged into the generation orchestrator.

A behavior bundles what differs between entity types: the pydantic field
sets used for validation, the prompt templates, the output parser and the
field that receives raw generator text when an update reply is not JSON.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Type

import pydantic
from pydantic import BaseModel

from habitflow.exceptions import ValidationError
from habitflow.services.output_parsers import JsonOutputParser
from habitflow.services.prompts import PromptBuilder

logger = logging.getLogger(__name__)


class EntityBehavior:
    resource_name: str = "record"
    create_schema: Type[BaseModel] = None
    update_schema: Type[BaseModel] = None
    content_field: str = "description"
    create_template: str = ""
    update_template: str = ""

    def __init__(
        self,
        prompt_builder: Optional[PromptBuilder] = None,
        output_parser: Optional[JsonOutputParser] = None,
    ) -> None:
        self.prompt_builder = prompt_builder or PromptBuilder(self.create_template, self.update_template)
        self.output_parser = output_parser or JsonOutputParser(self.content_field)

    @staticmethod
    def _describe(exc: pydantic.ValidationError) -> str:
        parts = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err.get("loc", ())) or "data"
            parts.append(f"{loc}: {err.get('msg')}")
        return "; ".join(parts)

    def validate(self, data: Optional[Mapping[str, Any]], is_update: bool = False) -> Dict[str, Any]:
        """Check ``data`` against the create or update field set; return the cleaned dict."""
        if not isinstance(data, Mapping):
            raise ValidationError(self.resource_name, "expected an object of fields")
        schema = self.update_schema if is_update else self.create_schema
        try:
            model = schema.model_validate(dict(data))
        except pydantic.ValidationError as exc:
            raise ValidationError(self.resource_name, self._describe(exc)) from exc
        if is_update:
            return model.model_dump(exclude_unset=True)
        return model.model_dump(exclude_none=True)

    def set_defaults(self, data: Dict[str, Any], is_update: bool = False) -> Dict[str, Any]:
        return data

    def merge_generated(self, base: Optional[Mapping[str, Any]], generated: Mapping[str, Any]) -> Dict[str, Any]:
        """Generated values win over caller values; nulls from the generator are ignored."""
        merged = dict(base or {})
        for key, value in generated.items():
            if value is not None:
                merged[key] = value
        return merged

    def prepare(self, data: Optional[Mapping[str, Any]], is_update: bool = False) -> Dict[str, Any]:
        """validate + set_defaults, the sequence every write path runs."""
        return self.set_defaults(self.validate(data, is_update=is_update), is_update=is_update)
