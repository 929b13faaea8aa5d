# tests/test_ledger.py
"""
Tests for the append-only ledger.

Covers:
- Ordered appends and the running token total
- Prefix replacement with a summary item
- Rejection of corrupt items (negative tokens, duplicates, wrong type)
- Snapshot stability while the ledger changes
"""

import pytest

from chuk_context_budget.exceptions import LedgerCorruption
from chuk_context_budget.ledger import Ledger
from chuk_context_budget.models.context_item import ContextItem
from chuk_context_budget.models.item_kind import ItemKind

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _item(tokens: int, kind: ItemKind = ItemKind.USER_MESSAGE) -> ContextItem:
    return ContextItem.create(kind, "x" * (tokens * 4))


def _summary(tokens: int = 10) -> ContextItem:
    return ContextItem.create(ItemKind.SUMMARY, "s" * (tokens * 4))


# ===========================================================================
# Append
# ===========================================================================


class TestAppend:
    def test_append_preserves_order(self):
        ledger = Ledger(session_id="s1")
        items = [_item(n) for n in (5, 10, 15)]
        for item in items:
            ledger.append(item)

        assert list(ledger) == items
        assert len(ledger) == 3
        assert ledger[0] is items[0]

    def test_used_tokens_is_sum_of_items(self):
        ledger = Ledger(items=[_item(100), _item(200), _item(30, ItemKind.TOOL_OUTPUT)])
        assert ledger.used_tokens == 330

    def test_empty_ledger(self):
        ledger = Ledger()
        assert ledger.used_tokens == 0
        assert ledger.items == ()

    def test_snapshot_is_stable_after_append(self):
        ledger = Ledger(items=[_item(1)])
        before = ledger.items
        ledger.append(_item(2))
        assert len(before) == 1
        assert len(ledger.items) == 2


# ===========================================================================
# Corruption
# ===========================================================================


class TestCorruption:
    def test_negative_tokens_rejected(self):
        ledger = Ledger(session_id="s1")
        bad = ContextItem.model_construct(
            item_id="bad",
            kind=ItemKind.USER_MESSAGE,
            role="user",
            content="hi",
            estimated_tokens=-5,
            truncated=False,
        )
        with pytest.raises(LedgerCorruption) as exc_info:
            ledger.append(bad)
        assert exc_info.value.session_id == "s1"
        assert len(ledger) == 0

    def test_duplicate_id_rejected(self):
        item = _item(3)
        ledger = Ledger(items=[item])
        with pytest.raises(LedgerCorruption, match="Duplicate"):
            ledger.append(item)
        assert len(ledger) == 1

    def test_wrong_type_rejected(self):
        ledger = Ledger()
        with pytest.raises(LedgerCorruption):
            ledger.append({"content": "hello"})  # type: ignore[arg-type]

    def test_verify_passes_on_clean_ledger(self):
        ledger = Ledger(items=[_item(1), _item(2)])
        ledger.verify()


# ===========================================================================
# Prefix replacement
# ===========================================================================


class TestReplacePrefix:
    def test_replaces_prefix_and_keeps_tail_order(self):
        items = [_item(100) for _ in range(5)]
        ledger = Ledger(items=items)
        summary = _summary(20)

        removed = ledger.replace_prefix(3, summary, expected_ids=[i.item_id for i in items[:3]])

        assert removed == tuple(items[:3])
        assert ledger.items == (summary, items[3], items[4])
        assert ledger.used_tokens == 220

    def test_requires_summary_kind(self):
        ledger = Ledger(items=[_item(10), _item(10)])
        with pytest.raises(LedgerCorruption):
            ledger.replace_prefix(1, _item(1))

    def test_count_out_of_range(self):
        ledger = Ledger(items=[_item(10)])
        with pytest.raises(LedgerCorruption):
            ledger.replace_prefix(2, _summary())
        with pytest.raises(LedgerCorruption):
            ledger.replace_prefix(0, _summary())

    def test_changed_prefix_rejected(self):
        items = [_item(10) for _ in range(3)]
        ledger = Ledger(items=items)
        with pytest.raises(LedgerCorruption, match="changed"):
            ledger.replace_prefix(2, _summary(1), expected_ids=[items[1].item_id, items[0].item_id])
        assert ledger.items == tuple(items)

    def test_removed_ids_leave_the_index(self):
        items = [_item(10) for _ in range(3)]
        ledger = Ledger(items=items)
        ledger.replace_prefix(2, _summary(1))
        ledger.verify()
        # A removed item is no longer part of the index
        ledger.append(items[0])
        assert len(ledger) == 3

    def test_clear(self):
        ledger = Ledger(items=[_item(10), _item(20)])
        ledger.clear()
        assert ledger.generation == 1
        assert len(ledger) == 0
        assert ledger.used_tokens == 0
        ledger.verify()

    def test_generation_only_changes_on_clear(self):
        items = [_item(10) for _ in range(3)]
        ledger = Ledger(items=items)
        ledger.append(_item(5))
        ledger.replace_prefix(2, _summary(1))
        assert ledger.generation == 0
        ledger.clear()
        ledger.clear()
        assert ledger.generation == 2
