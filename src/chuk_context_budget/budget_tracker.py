# chuk_context_budget/budget_tracker.py
"""
Running budget totals derived from a ledger and a window config.

Nothing here is cached: every snapshot is recomputed from the ledger so it
can never drift from the items actually stored. The only state the tracker
keeps is the latched compaction signal.
"""

from __future__ import annotations

import logging

from chuk_context_budget.ledger import Ledger
from chuk_context_budget.models.budget import BudgetSnapshot, CompactionSignal
from chuk_context_budget.models.window_config import WindowConfig

logger = logging.getLogger(__name__)


class BudgetTracker:
    """
    Derives :class:`BudgetSnapshot` values and the compaction signal.

    The signal is raised once ``used / (window - reserved)`` reaches the
    compaction threshold and stays latched until :meth:`clear_latch` is called
    after a completed compaction. Callers get the latched signal back on every
    subsequent check and must treat repeats idempotently.
    """

    def __init__(self, ledger: Ledger, config: WindowConfig) -> None:
        self._ledger = ledger
        self._config = config
        self._signal: CompactionSignal | None = None

    @property
    def config(self) -> WindowConfig:
        return self._config

    @property
    def latched(self) -> bool:
        return self._signal is not None

    @property
    def signal(self) -> CompactionSignal | None:
        return self._signal

    def usage_ratio(self) -> float:
        """Unrounded used / effective-window ratio."""
        return self._ledger.used_tokens / self._config.effective_window

    def snapshot(self) -> BudgetSnapshot:
        """Compute the current budget view. No side effects."""
        items = self._ledger.items
        used = sum(item.estimated_tokens for item in items)
        cfg = self._config
        ratio = used / cfg.effective_window
        return BudgetSnapshot(
            used_tokens=used,
            window_size=cfg.window_size,
            reserved_tokens=cfg.reserved_tokens,
            available_tokens=max(0, cfg.window_size - cfg.reserved_tokens - used),
            percentage_used=ratio,
            compaction_threshold=cfg.compaction_threshold,
            item_count=len(items),
            compaction_needed=self._signal is not None or ratio >= cfg.compaction_threshold,
        )

    def check_after_append(self) -> CompactionSignal | None:
        """
        Evaluate the threshold after a ledger mutation.

        Returns:
            The (possibly newly latched) signal, or None while under threshold
            with no latch.
        """
        if self._signal is not None:
            return self._signal

        used = self._ledger.used_tokens
        effective = self._config.effective_window
        ratio = used / effective
        if ratio >= self._config.compaction_threshold:
            self._signal = CompactionSignal(
                used_tokens=used,
                effective_window=effective,
                ratio=ratio,
                threshold=self._config.compaction_threshold,
            )
            logger.info(
                f"Compaction threshold reached: {used}/{effective} tokens "
                f"({ratio:.1%} >= {self._config.compaction_threshold:.0%})"
            )
        return self._signal

    def latch(self) -> CompactionSignal:
        """Latch the signal unconditionally (used when restoring a checkpoint)."""
        if self._signal is None:
            used = self._ledger.used_tokens
            effective = self._config.effective_window
            self._signal = CompactionSignal(
                used_tokens=used,
                effective_window=effective,
                ratio=used / effective,
                threshold=self._config.compaction_threshold,
            )
        return self._signal

    def clear_latch(self) -> None:
        """Release the latch once a compaction has completed."""
        self._signal = None
