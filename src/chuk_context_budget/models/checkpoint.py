# chuk_context_budget/models/checkpoint.py
"""Serializable session checkpoint."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from chuk_context_budget.models.context_item import ContextItem
from chuk_context_budget.models.window_config import WindowConfig


class SessionCheckpoint(BaseModel):
    """
    Flat, ordered form of a session's ledger and budget state.

    Restoring a checkpoint reproduces an identical ``snapshot()``.
    """

    session_id: str
    config: WindowConfig
    items: list[ContextItem] = Field(default_factory=list)
    compaction_signal_latched: bool = False
    saved_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def used_tokens(self) -> int:
        return sum(item.estimated_tokens for item in self.items)
