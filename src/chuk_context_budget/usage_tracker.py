# chuk_context_budget/usage_tracker.py
"""
Per-turn usage tracking from backend usage metadata.

Where the ledger holds *estimated* tokens for stored history, the usage
tracker records what the backend actually reported per turn. Comparing the
two is how estimator drift shows up in practice.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from pydantic import BaseModel, Field, PrivateAttr

logger = logging.getLogger(__name__)


class TurnUsage(BaseModel):
    """Tokens reported for one request/response turn."""

    turn_number: int
    input_tokens: int = Field(ge=0)
    output_tokens: int = Field(ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    compaction_event: bool = False

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class UsageTracker(BaseModel):
    """Append-only record of turn usage for a session."""

    session_id: str = ""
    model_name: str = ""
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    _turns: list[TurnUsage] = PrivateAttr(default_factory=list)

    @property
    def turns(self) -> list[TurnUsage]:
        return list(self._turns)

    @property
    def turn_count(self) -> int:
        return len(self._turns)

    @property
    def total_tokens(self) -> int:
        return sum(turn.total_tokens for turn in self._turns)

    def record_turn(self, input_tokens: int, output_tokens: int) -> TurnUsage:
        """Log token usage for a turn."""
        turn = TurnUsage(
            turn_number=len(self._turns) + 1,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
        self._turns.append(turn)
        return turn

    def record_compaction(self) -> None:
        """Mark the latest turn as one where compaction occurred."""
        if self._turns:
            last = self._turns[-1]
            self._turns[-1] = last.model_copy(update={"compaction_event": True})

    def average_turn_size(self) -> int:
        """Average tokens per turn (0 before the first turn)."""
        if not self._turns:
            return 0
        return self.total_tokens // len(self._turns)

    def estimate_remaining_turns(self, available_tokens: int) -> int:
        """How many average-sized turns still fit in ``available_tokens``."""
        average = self.average_turn_size()
        if average == 0:
            return 0
        return max(0, available_tokens) // average
