# chuk_context_budget/models/budget.py
"""Budget snapshot and compaction signal models."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class BudgetSnapshot(BaseModel):
    """
    Point-in-time view of token usage for a session.

    Always derived from the ledger and the window config at read time; never
    stored. ``percentage_used`` is the unrounded ratio used for decisions,
    ``display_percent`` is for reporting only.
    """

    model_config = ConfigDict(frozen=True)

    used_tokens: int = Field(ge=0)
    window_size: int
    reserved_tokens: int
    available_tokens: int = Field(ge=0)
    percentage_used: float
    compaction_threshold: float
    item_count: int = 0
    compaction_needed: bool = False

    @property
    def effective_window(self) -> int:
        return self.window_size - self.reserved_tokens

    @property
    def display_percent(self) -> int:
        """Percentage used, rounded for display."""
        return round(self.percentage_used * 100)

    @property
    def display_threshold(self) -> int:
        return round(self.compaction_threshold * 100)


class CompactionSignal(BaseModel):
    """Raised (returned) when usage crosses the compaction threshold."""

    model_config = ConfigDict(frozen=True)

    used_tokens: int
    effective_window: int
    ratio: float
    threshold: float
    raised_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def over_by(self) -> float:
        """How far past the threshold the ratio is (0 at the boundary)."""
        return self.ratio - self.threshold
