"""Runtime toggles for the generation features, read once from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Dict, Tuple

# flag name -> (environment variable, default)
FLAGS: Dict[str, Tuple[str, bool]] = {
    "llm_features_enabled": ("LLM_FEATURES_ENABLED", True),
    "llm_cache_enabled": ("LLM_CACHE_ENABLED", True),
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"", "0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _FALSE:
        return False
    if value in _TRUE:
        return True
    return default


@lru_cache(maxsize=None)
def get_feature_flags() -> Dict[str, bool]:
    return {flag: _env_bool(env_var, default) for flag, (env_var, default) in FLAGS.items()}


def is_feature_enabled(flag: str) -> bool:
    """Unknown flag names raise KeyError."""
    return get_feature_flags()[flag]


def llm_features_enabled() -> bool:
    return is_feature_enabled("llm_features_enabled")


def llm_cache_enabled() -> bool:
    return is_feature_enabled("llm_cache_enabled")


def refresh_feature_flag_cache() -> None:
    """Drop cached values so the next lookup re-reads the environment."""
    get_feature_flags.cache_clear()
