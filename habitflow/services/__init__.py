"""Generation services: providers, prompts, parsing, caching and orchestration."""

from .llm_providers import (
    BaseTextGenerator,
    GeminiTextGenerator,
    MockTextGenerator,
    OllamaTextGenerator,
    build_generator,
)
from .prompts import PromptBuilder, RenderedPrompt
from .output_parsers import JsonOutputParser, extract_json
from .response_cache import ResponseCache, fingerprint
from .generation import GenerationOrchestrator

__all__ = [
    "BaseTextGenerator",
    "GeminiTextGenerator",
    "MockTextGenerator",
    "OllamaTextGenerator",
    "build_generator",
    "PromptBuilder",
    "RenderedPrompt",
    "JsonOutputParser",
    "extract_json",
    "ResponseCache",
    "fingerprint",
    "GenerationOrchestrator",
]
