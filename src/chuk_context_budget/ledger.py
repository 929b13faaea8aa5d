# chuk_context_budget/ledger.py
"""
Ordered, append-only store of conversation items.

The ledger only supports two mutations:

- ``append``: add one item at the end.
- ``replace_prefix``: remove a contiguous prefix and put a single summary item
  in its place (compaction). Relative order of everything else is preserved.

Items are kept in a tuple that is swapped on every mutation, so readers always
see a complete, stable sequence without taking a lock. The ledger itself does
no locking; :class:`~chuk_context_budget.session_handle.SessionHandle` owns it
and serializes writers.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from chuk_context_budget.exceptions import LedgerCorruption
from chuk_context_budget.models.context_item import ContextItem
from chuk_context_budget.models.item_kind import ItemKind

logger = logging.getLogger(__name__)


class Ledger:
    """Conversation items for one session, in conversation order."""

    def __init__(self, session_id: str | None = None, items: Sequence[ContextItem] = ()) -> None:
        self.session_id = session_id
        self._items: tuple[ContextItem, ...] = ()
        self._ids: set[str] = set()
        self._generation = 0
        for item in items:
            self.append(item)

    @property
    def items(self) -> tuple[ContextItem, ...]:
        """Current items (an immutable view)."""
        return self._items

    @property
    def generation(self) -> int:
        """Bumped whenever the ledger is reset; appends and compaction keep it."""
        return self._generation

    @property
    def used_tokens(self) -> int:
        """Sum of ``estimated_tokens`` over all current items."""
        return sum(item.estimated_tokens for item in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ContextItem]:
        return iter(self._items)

    def __getitem__(self, index: int) -> ContextItem:
        return self._items[index]

    def append(self, item: ContextItem) -> None:
        """Append one item at the end of the ledger."""
        self._check_item(item)
        self._items = (*self._items, item)
        self._ids.add(item.item_id)
        logger.debug(f"Ledger append {item.kind.value} ({item.estimated_tokens} tokens), {len(self._items)} items")

    def replace_prefix(
        self,
        count: int,
        summary: ContextItem,
        expected_ids: Sequence[str] | None = None,
    ) -> tuple[ContextItem, ...]:
        """
        Replace the first ``count`` items with ``summary``.

        Args:
            count: Number of leading items to remove (at least 1).
            summary: The summary item to insert in their place.
            expected_ids: Item ids the caller summarized. If given, the current
                prefix must match them exactly.

        Returns:
            The removed items.
        """
        if summary.kind != ItemKind.SUMMARY:
            raise LedgerCorruption(f"Prefix replacement requires a summary item, got {summary.kind.value}", self.session_id)
        if count < 1 or count > len(self._items):
            raise LedgerCorruption(f"Prefix of {count} items out of range for {len(self._items)} items", self.session_id)

        removed = self._items[:count]
        if expected_ids is not None and [item.item_id for item in removed] != list(expected_ids):
            raise LedgerCorruption("Ledger prefix changed while it was being compacted", self.session_id)

        self._check_tokens(summary)
        remaining_ids = self._ids - {item.item_id for item in removed}
        if summary.item_id in remaining_ids:
            raise LedgerCorruption(f"Duplicate item id {summary.item_id}", self.session_id)

        self._items = (summary, *self._items[count:])
        self._ids = remaining_ids | {summary.item_id}
        return removed

    def clear(self) -> None:
        """Drop every item."""
        self._items = ()
        self._ids = set()
        self._generation += 1

    def verify(self) -> None:
        """Re-check every stored item; raises LedgerCorruption on the first violation."""
        seen: set[str] = set()
        for item in self._items:
            self._check_tokens(item)
            if item.item_id in seen:
                raise LedgerCorruption(f"Duplicate item id {item.item_id}", self.session_id)
            seen.add(item.item_id)
        if seen != self._ids:
            raise LedgerCorruption("Item index out of sync with ledger contents", self.session_id)

    def _check_item(self, item: ContextItem) -> None:
        if not isinstance(item, ContextItem):
            raise LedgerCorruption(f"Cannot append {type(item).__name__} to the ledger", self.session_id)
        self._check_tokens(item)
        if item.item_id in self._ids:
            raise LedgerCorruption(f"Duplicate item id {item.item_id}", self.session_id)

    def _check_tokens(self, item: ContextItem) -> None:
        tokens = item.estimated_tokens
        if not isinstance(tokens, int) or isinstance(tokens, bool) or tokens < 0:
            raise LedgerCorruption(f"Invalid token count {tokens!r} on item {item.item_id}", self.session_id)
