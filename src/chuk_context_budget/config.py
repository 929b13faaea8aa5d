# chuk_context_budget/config.py
"""
Central defaults for the context budget manager.

Every value can be overridden by an environment variable (a ``.env`` file is
honoured through python-dotenv) and again by explicit keyword overrides when
building a :class:`~chuk_context_budget.models.window_config.WindowConfig`.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Central model config: can be overridden by environment variable
DEFAULT_MODEL = os.getenv("CHUK_CONTEXT_MODEL", "gemini-2.5-flash")

DEFAULT_WINDOW_SIZE = 1_000_000
DEFAULT_RESERVED_OUTPUT_FRACTION = 0.10
DEFAULT_COMPACTION_THRESHOLD = 0.70

# Tool output truncation caps
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024
DEFAULT_MAX_OUTPUT_LINES = 256
DEFAULT_HEAD_LINES = 128
DEFAULT_TAIL_LINES = 128

# Recent history that compaction never touches
DEFAULT_RETENTION_BUDGET = 20_000

DEFAULT_SUMMARY_MAX_TOKENS = 1_024
DEFAULT_SUMMARIZATION_TIMEOUT = 60.0

# Known context windows per backend model
MODEL_CONTEXT_WINDOWS: dict[str, int] = {
    "gemini-2.5-flash": 1_000_000,
    "gemini-2.5-pro": 1_000_000,
    "gemini-2.0-flash": 1_000_000,
    "gpt-4o": 128_000,
    "gpt-4o-mini": 128_000,
    "gpt-4.1": 1_000_000,
    "o3-mini": 200_000,
    "claude-sonnet-4": 200_000,
    "claude-opus-4": 200_000,
    "claude-3-5-haiku": 200_000,
}

# Environment variable -> WindowConfig field
ENV_OVERRIDES: dict[str, tuple[str, type]] = {
    "CHUK_CONTEXT_WINDOW": ("window_size", int),
    "CHUK_CONTEXT_RESERVED_FRACTION": ("reserved_output_fraction", float),
    "CHUK_CONTEXT_COMPACT_THRESHOLD": ("compaction_threshold", float),
    "CHUK_CONTEXT_MAX_OUTPUT_BYTES": ("max_output_bytes", int),
    "CHUK_CONTEXT_MAX_OUTPUT_LINES": ("max_output_lines", int),
    "CHUK_CONTEXT_HEAD_LINES": ("head_lines", int),
    "CHUK_CONTEXT_TAIL_LINES": ("tail_lines", int),
    "CHUK_CONTEXT_RETENTION_BUDGET": ("retention_budget", int),
    "CHUK_CONTEXT_SUMMARY_MAX_TOKENS": ("summary_max_tokens", int),
    "CHUK_CONTEXT_SUMMARY_TIMEOUT": ("summarization_timeout", float),
}


def window_size_for_model(model_name: str | None) -> int:
    """Look up the context window for a model, falling back to the default.

    Matches exact names first, then the longest known prefix so that dated
    variants (``gpt-4o-2024-08-06``) resolve to their family.
    """
    if not model_name:
        return DEFAULT_WINDOW_SIZE
    if model_name in MODEL_CONTEXT_WINDOWS:
        return MODEL_CONTEXT_WINDOWS[model_name]
    matches = [name for name in MODEL_CONTEXT_WINDOWS if model_name.startswith(name)]
    if matches:
        return MODEL_CONTEXT_WINDOWS[max(matches, key=len)]
    logger.debug(f"No known context window for {model_name!r}; using default {DEFAULT_WINDOW_SIZE}")
    return DEFAULT_WINDOW_SIZE


def read_env_overrides() -> dict[str, Any]:
    """Collect WindowConfig overrides from the environment.

    Values that fail to parse are ignored with a warning.
    """
    overrides: dict[str, Any] = {}
    for env_name, (field_name, cast) in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or raw.strip() == "":
            continue
        try:
            overrides[field_name] = cast(raw)
        except ValueError:
            logger.warning(f"Ignoring {env_name}={raw!r}: not a valid {cast.__name__}")
    return overrides
