# chuk_context_budget/models/compaction.py
"""Compaction outcome models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from chuk_context_budget.exceptions import CompactionFailed


class CompactionState(str, Enum):
    """Engine state machine: IDLE -> SUMMARIZING -> IDLE | FAILED -> IDLE."""

    IDLE = "idle"
    SUMMARIZING = "summarizing"
    FAILED = "failed"


class CompactionStatus(str, Enum):
    """Outcome of a compaction request."""

    COMPACTED = "compacted"
    NO_OP = "no_op"  # Everything fits in the retention budget
    FAILED = "failed"  # Summarizer error or timeout; ledger untouched
    NOT_NEEDED = "not_needed"  # No latched signal
    COALESCED = "coalesced"  # Another compaction was already in flight


class CompactionResult(BaseModel):
    """Result of a compaction attempt."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: CompactionStatus
    original_tokens: int
    final_tokens: int
    items_summarized: int = 0
    items_retained: int = 0
    summary: str = ""
    error: CompactionFailed | None = Field(default=None, exclude=True)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def succeeded(self) -> bool:
        return self.status == CompactionStatus.COMPACTED

    @property
    def tokens_saved(self) -> int:
        return self.original_tokens - self.final_tokens

    @property
    def compaction_ratio(self) -> float:
        """Original over final tokens (1.0 when nothing changed)."""
        if self.final_tokens <= 0:
            return 1.0
        return self.original_tokens / self.final_tokens
