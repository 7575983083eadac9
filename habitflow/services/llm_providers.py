"""Text generator abstraction used by the generation orchestrator."""
from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from typing import Any, List, Mapping, Optional, Sequence

import requests

from habitflow.config import GeneratorConfig
from habitflow.exceptions import ExternalCallError

logger = logging.getLogger(__name__)


class BaseTextGenerator:
    """Contract: ``await generate(prompt_text, context) -> str``."""

    model_id: str = "unknown"

    async def generate(self, prompt_text: str, context: Optional[Mapping[str, Any]] = None) -> str:
        raise NotImplementedError


class MockTextGenerator(BaseTextGenerator):
    """Deterministic generator for tests and local runs.

    Replays ``responses`` in order (the last one repeats once exhausted).
    Without canned responses, answers with a JSON object derived from the
    prompt digest.
    """

    def __init__(self, responses: Optional[Sequence[str]] = None, model_id: str = "mock") -> None:
        self.model_id = model_id
        self._responses: List[str] = list(responses or [])
        self.calls: List[str] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def generate(self, prompt_text: str, context: Optional[Mapping[str, Any]] = None) -> str:
        index = len(self.calls)
        self.calls.append(prompt_text)
        if self._responses:
            return self._responses[min(index, len(self._responses) - 1)]
        digest = hashlib.sha256(prompt_text.encode("utf-8")).hexdigest()[:8]
        return json.dumps({"title": f"Generated {digest}", "name": f"Generated {digest}"})


class OllamaTextGenerator(BaseTextGenerator):
    def __init__(
        self,
        model: str,
        base_url: str,
        temperature: float = 0.3,
        timeout_seconds: float = 60.0,
    ) -> None:
        self.model_id = model
        self.base_url = base_url.rstrip('/')
        self.temperature = temperature
        self.timeout = (3, timeout_seconds)

    def _post(self, prompt_text: str) -> str:
        payload = {
            "model": self.model_id,
            "prompt": prompt_text,
            "stream": False,
            "format": "json",
            "options": {"temperature": self.temperature},
        }
        response = requests.post(f"{self.base_url}/api/generate", json=payload, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        text = data.get("response")
        if not isinstance(text, str):
            raise RuntimeError("Unexpected Ollama generate response structure")
        return text

    async def generate(self, prompt_text: str, context: Optional[Mapping[str, Any]] = None) -> str:
        try:
            # requests is blocking; keep the event loop free
            return await asyncio.to_thread(self._post, prompt_text)
        except (requests.RequestException, RuntimeError, ValueError) as exc:
            logger.error("Ollama generation failed for model %s: %s", self.model_id, exc)
            raise ExternalCallError("ollama", str(exc)) from exc


class GeminiTextGenerator(BaseTextGenerator):
    def __init__(self, model: str, api_key: str, temperature: float = 0.3) -> None:
        from google import genai

        self.model_id = model
        self.temperature = temperature
        self._client = genai.Client(api_key=api_key)

    async def generate(self, prompt_text: str, context: Optional[Mapping[str, Any]] = None) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model_id,
                contents=prompt_text,
                config={
                    "response_mime_type": "application/json",
                    "temperature": self.temperature,
                },
            )
        except Exception as exc:
            logger.error("Gemini generation failed for model %s: %s", self.model_id, exc)
            raise ExternalCallError("gemini", str(exc)) from exc
        return response.text or ""


def build_generator(config: Optional[GeneratorConfig] = None) -> Optional[BaseTextGenerator]:
    """Return the configured generator, or None when generation is disabled."""
    config = config or GeneratorConfig.from_env()
    if not config.is_enabled:
        return None
    if config.provider == "ollama":
        return OllamaTextGenerator(
            model=config.model or "qwen2.5:7b",
            base_url=config.base_url or "http://localhost:11434",
            temperature=config.temperature,
            timeout_seconds=config.timeout_seconds,
        )
    if config.provider == "gemini":
        return GeminiTextGenerator(model=config.model, api_key=config.api_key, temperature=config.temperature)
    if config.provider == "mock":
        return MockTextGenerator()
    return None

