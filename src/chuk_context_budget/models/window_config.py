# chuk_context_budget/models/window_config.py
"""Per-backend context window configuration."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field, model_validator

from chuk_context_budget import config

logger = logging.getLogger(__name__)


class WindowConfig(BaseModel):
    """
    Sizing and policy knobs for one model backend.

    All values are numeric with defaults from :mod:`chuk_context_budget.config`;
    :func:`load_window_config` layers environment variables and explicit
    overrides on top.
    """

    model_name: str = Field(default=config.DEFAULT_MODEL)
    window_size: int = Field(default=config.DEFAULT_WINDOW_SIZE, gt=0, description="Total context window in tokens")
    reserved_output_fraction: float = Field(
        default=config.DEFAULT_RESERVED_OUTPUT_FRACTION,
        ge=0.0,
        lt=1.0,
        description="Fraction of the window reserved for model output",
    )
    compaction_threshold: float = Field(
        default=config.DEFAULT_COMPACTION_THRESHOLD,
        gt=0.0,
        le=1.0,
        description="Fraction of the effective window at which compaction is signalled",
    )

    # Tool output truncation caps; a split keeps head + tail lines plus one marker line
    max_output_bytes: int = Field(default=config.DEFAULT_MAX_OUTPUT_BYTES, gt=0)
    max_output_lines: int = Field(default=config.DEFAULT_MAX_OUTPUT_LINES, gt=0)
    head_lines: int = Field(default=config.DEFAULT_HEAD_LINES, ge=0)
    tail_lines: int = Field(default=config.DEFAULT_TAIL_LINES, ge=0)

    retention_budget: int = Field(
        default=config.DEFAULT_RETENTION_BUDGET,
        ge=0,
        description="Tokens of recent history compaction must never touch",
    )
    summary_max_tokens: int = Field(default=config.DEFAULT_SUMMARY_MAX_TOKENS, gt=0)
    summarization_timeout: float = Field(default=config.DEFAULT_SUMMARIZATION_TIMEOUT, gt=0.0)

    @model_validator(mode="after")
    def _check_reserved(self) -> WindowConfig:
        if self.reserved_tokens >= self.window_size:
            raise ValueError("reserved output tokens must leave part of the window for input")
        return self

    @property
    def reserved_tokens(self) -> int:
        """Tokens held back for the model's output."""
        return round(self.window_size * self.reserved_output_fraction)

    @property
    def effective_window(self) -> int:
        """Tokens usable by conversation history."""
        return self.window_size - self.reserved_tokens

    @property
    def threshold_tokens(self) -> float:
        """Used-token count at which compaction is signalled."""
        return self.effective_window * self.compaction_threshold

    @classmethod
    def for_model(cls, model_name: str, **overrides: Any) -> WindowConfig:
        """Build a config sized for ``model_name`` (no environment lookup)."""
        values: dict[str, Any] = {"model_name": model_name, "window_size": config.window_size_for_model(model_name)}
        values.update(overrides)
        return cls(**values)


def load_window_config(model_name: str | None = None, **overrides: Any) -> WindowConfig:
    """
    Resolve a WindowConfig from defaults, environment and explicit overrides.

    Precedence (lowest to highest): built-in defaults, the per-model window
    table, ``CHUK_CONTEXT_*`` environment variables, keyword ``overrides``.
    """
    name = model_name or config.DEFAULT_MODEL
    values: dict[str, Any] = {"model_name": name, "window_size": config.window_size_for_model(name)}
    values.update(config.read_env_overrides())
    values.update(overrides)
    window_config = WindowConfig(**values)
    logger.debug(
        f"Loaded window config for {name}: window={window_config.window_size}, "
        f"reserved={window_config.reserved_tokens}, threshold={window_config.compaction_threshold}"
    )
    return window_config
