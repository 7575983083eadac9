"""Environment-driven settings shared by the generation pipeline."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class GenerationSettings:
    """Knobs for the cache-or-generate pipeline."""

    cache_ttl_minutes: int = 240
    cache_max_entries: int = 10000
    default_batch_size: int = 1
    max_batch_size: int = 20

    @property
    def cache_ttl_seconds(self) -> int:
        return self.cache_ttl_minutes * 60

    @classmethod
    def from_env(cls) -> "GenerationSettings":
        return cls(
            cache_ttl_minutes=max(0, _env_int("LLM_CACHE_TTL_MINUTES", 240)),
            cache_max_entries=max(1, _env_int("LLM_CACHE_MAX_ENTRIES", 10000)),
            default_batch_size=max(1, _env_int("GENERATION_DEFAULT_BATCH_SIZE", 1)),
            max_batch_size=max(1, _env_int("GENERATION_MAX_BATCH_SIZE", 20)),
        )


@dataclass(frozen=True)
class GeneratorConfig:
    """Which external text generator to talk to, and how."""

    provider: str
    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: float = 0.3
    timeout_seconds: float = 60.0

    @classmethod
    def from_env(cls) -> "GeneratorConfig":
        provider = (os.getenv("LLM_PROVIDER") or "disabled").strip().lower()
        temperature = _env_float("LLM_TEMPERATURE", 0.3)
        timeout = _env_float("LLM_TIMEOUT_SECONDS", 60.0)
        if provider == "gemini":
            return cls(
                provider=provider,
                model=os.getenv("LLM_MODEL_NAME"),
                api_key=os.getenv("LLM_API_KEY"),
                temperature=temperature,
                timeout_seconds=timeout,
            )
        if provider == "ollama":
            return cls(
                provider=provider,
                model=os.getenv("LLM_MODEL_NAME", "qwen2.5:7b"),
                base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
                temperature=temperature,
                timeout_seconds=timeout,
            )
        if provider == "mock":
            return cls(provider=provider, model="mock")
        if provider not in {"disabled", "none", "off", ""}:
            logging.getLogger(__name__).warning("Unknown LLM_PROVIDER '%s'; generation disabled.", provider)
        return cls(provider="disabled")

    @property
    def is_enabled(self) -> bool:
        if self.provider == "disabled":
            return False
        if self.provider == "gemini" and not (self.api_key and self.model):
            logging.getLogger(__name__).warning(
                "LLM_API_KEY and LLM_MODEL_NAME must be set for Gemini; disabling provider."
            )
            return False
        return True


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for scripts and workers."""
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
