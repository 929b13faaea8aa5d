# tests/test_usage_tracker.py
"""
Tests for per-turn usage tracking.
"""

from chuk_context_budget.usage_tracker import UsageTracker


class TestUsageTracker:
    def test_empty(self):
        tracker = UsageTracker(session_id="s", model_name="gpt-4o")
        assert tracker.turn_count == 0
        assert tracker.average_turn_size() == 0
        assert tracker.estimate_remaining_turns(10_000) == 0

    def test_record_turns(self):
        tracker = UsageTracker()
        first = tracker.record_turn(100, 20)
        second = tracker.record_turn(300, 80)

        assert (first.turn_number, second.turn_number) == (1, 2)
        assert tracker.total_tokens == 500
        assert tracker.average_turn_size() == 250
        assert tracker.estimate_remaining_turns(1000) == 4
        assert tracker.estimate_remaining_turns(-5) == 0

    def test_record_compaction_marks_latest_turn(self):
        tracker = UsageTracker()
        tracker.record_turn(10, 1)
        tracker.record_turn(20, 2)
        tracker.record_compaction()

        turns = tracker.turns
        assert turns[0].compaction_event is False
        assert turns[1].compaction_event is True

    def test_record_compaction_before_any_turn(self):
        tracker = UsageTracker()
        tracker.record_compaction()
        assert tracker.turn_count == 0

    def test_turns_is_a_copy(self):
        tracker = UsageTracker()
        tracker.record_turn(1, 1)
        tracker.turns.clear()
        assert tracker.turn_count == 1
