"""
Parsers that reduce free-form generator output to field dictionaries.

Generators wrap JSON in prose and markdown fences often enough that a
plain ``json.loads`` is not sufficient. When the whole (stripped) text is
not JSON of the wanted kind, candidates are pooled from ```json fenced
blocks and from balanced values embedded in the prose, and the longest
candidate wins.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple

from habitflow.exceptions import GenerationParseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)```")
_decoder = json.JSONDecoder()


def _embedded_values(text: str, opener: str) -> Iterator[Tuple[int, Any]]:
    """Yield ``(length, value)`` for every balanced JSON value starting at ``opener``."""
    idx = text.find(opener)
    while idx != -1:
        try:
            value, end = _decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            idx = text.find(opener, idx + 1)
            continue
        yield end - idx, value
        idx = text.find(opener, end)


def extract_json(text: str, kind: type = dict) -> Optional[Any]:
    """Return the longest JSON value of ``kind`` found in ``text``, else None."""
    if not text:
        return None
    stripped = text.strip()
    try:
        value = json.loads(stripped)
        if isinstance(value, kind):
            return value
    except json.JSONDecodeError:
        pass

    candidates: List[Tuple[int, Any]] = []
    for block in _FENCE_RE.findall(stripped):
        body = block.strip()
        try:
            candidates.append((len(body), json.loads(body)))
        except json.JSONDecodeError:
            continue
    opener = "{" if kind is dict else "["
    candidates.extend(_embedded_values(stripped, opener))

    best: Optional[Tuple[int, Any]] = None
    for length, value in candidates:
        if isinstance(value, kind) and (best is None or length > best[0]):
            best = (length, value)
    return best[1] if best else None


class JsonOutputParser:
    """Default per-entity parser; ``content_field`` receives raw text on lenient fallback."""

    def __init__(self, content_field: str) -> None:
        self.content_field = content_field

    def parse_create(self, text: str) -> Dict[str, Any]:
        value = extract_json(text, dict)
        if value is None:
            logger.debug("Unparseable create output: %r", text)
            raise GenerationParseError("Generator output contains no JSON object", raw_text=text)
        return value

    def parse_update(self, text: str, existing: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        value = extract_json(text, dict)
        if value is None:
            logger.warning("Update output was not JSON; using raw text for '%s'", self.content_field)
            return {self.content_field: (text or "").strip()}
        return value

    def parse_batch(self, text: str) -> List[Dict[str, Any]]:
        items = extract_json(text, list)
        if items is None:
            single = extract_json(text, dict)
            if single is None:
                raise GenerationParseError("Generator output contains no JSON array or object", raw_text=text)
            return [single]
        return [item for item in items if isinstance(item, dict)]
