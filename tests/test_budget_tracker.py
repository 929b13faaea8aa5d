# tests/test_budget_tracker.py
"""
Tests for budget snapshots and the latched compaction signal.

Covers:
- Snapshot arithmetic (used, reserved, available, ratio)
- Threshold crossing at exactly the boundary
- Latching and repeated signals
- Reporting helpers built on snapshots
"""

from chuk_context_budget.budget_tracker import BudgetTracker
from chuk_context_budget.ledger import Ledger
from chuk_context_budget.models.context_item import ContextItem
from chuk_context_budget.models.item_kind import ItemKind
from chuk_context_budget.models.window_config import WindowConfig
from chuk_context_budget.reporting import format_budget_details, format_usage_line

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _item(tokens: int) -> ContextItem:
    return ContextItem.create(ItemKind.ASSISTANT_MESSAGE, "y" * (tokens * 4))


def _tracker(config: WindowConfig, *token_counts: int) -> tuple[Ledger, BudgetTracker]:
    ledger = Ledger(items=[_item(n) for n in token_counts])
    return ledger, BudgetTracker(ledger, config)


# ===========================================================================
# Snapshots
# ===========================================================================


class TestSnapshot:
    def test_empty_ledger(self, small_config):
        _, tracker = _tracker(small_config)
        snapshot = tracker.snapshot()
        assert snapshot.used_tokens == 0
        assert snapshot.reserved_tokens == 100
        assert snapshot.available_tokens == 900
        assert snapshot.percentage_used == 0.0
        assert snapshot.compaction_needed is False

    def test_arithmetic(self, small_config):
        _, tracker = _tracker(small_config, 100, 200)
        snapshot = tracker.snapshot()
        assert snapshot.used_tokens == 300
        assert snapshot.available_tokens == 600
        assert snapshot.effective_window == 900
        assert snapshot.item_count == 2
        assert abs(snapshot.percentage_used - 300 / 900) < 1e-12

    def test_available_never_negative(self, small_config):
        _, tracker = _tracker(small_config, 950)
        snapshot = tracker.snapshot()
        assert snapshot.available_tokens == 0
        assert snapshot.percentage_used > 1.0

    def test_snapshot_has_no_side_effects(self, small_config):
        _, tracker = _tracker(small_config, 800)
        assert tracker.snapshot().compaction_needed is True
        assert tracker.latched is False


# ===========================================================================
# Compaction signal
# ===========================================================================


class TestCompactionSignal:
    def test_signal_at_exact_threshold(self, small_config):
        """Six 100-token turns then a 30-token turn reach 630/900 = 70%."""
        ledger, tracker = _tracker(small_config)
        for _ in range(6):
            ledger.append(_item(100))
            assert tracker.check_after_append() is None

        ledger.append(_item(30))
        signal = tracker.check_after_append()

        assert signal is not None
        assert signal.used_tokens == 630
        assert signal.effective_window == 900
        assert signal.over_by == 0.0
        assert format_usage_line(tracker.snapshot()) == "630/900 tokens (70%) • compaction at 70%"

    def test_signal_stays_latched(self, small_config):
        ledger, tracker = _tracker(small_config, 700)
        first = tracker.check_after_append()
        ledger.append(_item(1))
        second = tracker.check_after_append()
        assert first is second
        assert tracker.latched is True

    def test_latch_survives_drop_below_threshold(self, small_config):
        ledger, tracker = _tracker(small_config, 700)
        tracker.check_after_append()
        ledger.clear()
        assert tracker.check_after_append() is not None
        assert tracker.snapshot().compaction_needed is True

    def test_clear_latch_reevaluates(self, small_config):
        ledger, tracker = _tracker(small_config, 700)
        tracker.check_after_append()
        ledger.clear()
        tracker.clear_latch()
        assert tracker.check_after_append() is None

    def test_explicit_latch(self, small_config):
        _, tracker = _tracker(small_config, 10)
        signal = tracker.latch()
        assert tracker.signal is signal
        assert tracker.latch() is signal


# ===========================================================================
# Reporting
# ===========================================================================


class TestReporting:
    def test_usage_line_rounds_for_display(self, small_config):
        _, tracker = _tracker(small_config, 100)
        assert format_usage_line(tracker.snapshot()) == "100/900 tokens (11%) • compaction at 70%"

    def test_budget_details(self, small_config):
        _, tracker = _tracker(small_config, 800)
        details = format_budget_details(tracker.snapshot())
        assert "Used:       800 tokens" in details
        assert "(needed)" in details
        assert "100 reserved for output" in details
