# chuk_context_budget/compaction.py
"""
Compaction engine.

When asked to compact, the engine:

1. Walks the ledger from the newest item backwards, keeping items while the
   running total stays within the retention budget. Everything older is the
   candidate set; the rest is the retained tail.
2. Returns NO_OP if there are no candidates.
3. Sends only the candidates to the summarizer, bounded by a per-compaction
   timeout.
4. Atomically replaces the candidate prefix with one SUMMARY item.
5. On summarizer error or timeout leaves the ledger untouched and reports
   FAILED. A ledger cleared while the summarizer ran is also FAILED; the
   stale summary is discarded.

Compaction is never started automatically and only one can run per engine at
a time; a second request while one is in flight is COALESCED.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from chuk_context_budget.exceptions import CompactionFailed
from chuk_context_budget.ledger import Ledger
from chuk_context_budget.models.compaction import CompactionResult, CompactionState, CompactionStatus
from chuk_context_budget.models.context_item import ROLE_SUMMARY, ContextItem
from chuk_context_budget.models.item_kind import ItemKind
from chuk_context_budget.summarizer import SummarizeFn

logger = logging.getLogger(__name__)

SUMMARY_HEADER = "[CONVERSATION SUMMARY - {count} items compacted]"


def retention_boundary(items: Sequence[ContextItem], retention_budget: int) -> int:
    """
    Index of the oldest item in the retained tail.

    ``items[:boundary]`` is the candidate set, ``items[boundary:]`` the tail,
    whose token total never exceeds ``retention_budget``.
    """
    total = 0
    boundary = len(items)
    for index in range(len(items) - 1, -1, -1):
        total += items[index].estimated_tokens
        if total > retention_budget:
            break
        boundary = index
    return boundary


@dataclass(frozen=True)
class CompactionPlan:
    """Split of the ledger into candidates and retained tail."""

    candidates: tuple[ContextItem, ...]
    retained: tuple[ContextItem, ...]

    @property
    def candidate_tokens(self) -> int:
        return sum(item.estimated_tokens for item in self.candidates)

    @property
    def retained_tokens(self) -> int:
        return sum(item.estimated_tokens for item in self.retained)

    @property
    def total_tokens(self) -> int:
        return self.candidate_tokens + self.retained_tokens


def plan_compaction(items: Sequence[ContextItem], retention_budget: int) -> CompactionPlan:
    """Split ``items`` at the retention boundary."""
    boundary = retention_boundary(items, retention_budget)
    return CompactionPlan(candidates=tuple(items[:boundary]), retained=tuple(items[boundary:]))


def format_summary(summary: str, count: int) -> str:
    """Wrap summary text with the compaction header stored in the ledger."""
    return f"{SUMMARY_HEADER.format(count=count)}\n\n{summary}"


class CompactionEngine:
    """
    Runs compactions against a ledger.

    The engine never holds the ledger lock while the summarizer runs; it takes
    ``lock`` only to read the items and to apply the final prefix replacement.
    """

    def __init__(
        self,
        summarizer: SummarizeFn,
        retention_budget: int,
        timeout: float,
    ) -> None:
        self.summarizer = summarizer
        self.retention_budget = retention_budget
        self.timeout = timeout
        self._state = CompactionState.IDLE
        self.compaction_count = 0
        self.failure_count = 0
        self.last_error: CompactionFailed | None = None

    @property
    def state(self) -> CompactionState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._state == CompactionState.SUMMARIZING

    async def compact(self, ledger: Ledger, lock: asyncio.Lock) -> CompactionResult:
        """
        Compact ``ledger`` once.

        Raises:
            asyncio.CancelledError: If the calling task is cancelled while the
                summarizer runs; the ledger is left as it was.
            LedgerCorruption: If the prefix changed by anything other than a
                ledger reset.
        """
        if self._state == CompactionState.SUMMARIZING:
            logger.debug("Compaction already in flight; coalescing request")
            used = ledger.used_tokens
            return CompactionResult(status=CompactionStatus.COALESCED, original_tokens=used, final_tokens=used)

        # Claimed before the first await so concurrent callers coalesce
        self._state = CompactionState.SUMMARIZING
        try:
            async with lock:
                plan = plan_compaction(ledger.items, self.retention_budget)
                generation = ledger.generation

            if not plan.candidates:
                logger.debug(
                    f"Nothing to compact: {plan.retained_tokens} tokens fit the "
                    f"{self.retention_budget}-token retention budget"
                )
                return CompactionResult(
                    status=CompactionStatus.NO_OP,
                    original_tokens=plan.total_tokens,
                    final_tokens=plan.total_tokens,
                    items_retained=len(plan.retained),
                )

            try:
                summary_item = await self._summarize(plan.candidates)
            except CompactionFailed as e:
                return self._failed(plan, e)

            async with lock:
                if ledger.generation != generation:
                    return self._failed(plan, CompactionFailed("Ledger was cleared while it was being compacted"))
                ledger.replace_prefix(
                    len(plan.candidates),
                    summary_item,
                    expected_ids=[item.item_id for item in plan.candidates],
                )

            self.compaction_count += 1
            self.last_error = None
            final_tokens = plan.retained_tokens + summary_item.estimated_tokens
            logger.info(
                f"Compacted {len(plan.candidates)} items: {plan.total_tokens} -> {final_tokens} tokens "
                f"({len(plan.retained)} recent items retained)"
            )
            return CompactionResult(
                status=CompactionStatus.COMPACTED,
                original_tokens=plan.total_tokens,
                final_tokens=final_tokens,
                items_summarized=len(plan.candidates),
                items_retained=len(plan.retained),
                summary=summary_item.content,
            )
        finally:
            self._state = CompactionState.IDLE

    async def _summarize(self, candidates: tuple[ContextItem, ...]) -> ContextItem:
        try:
            text = await asyncio.wait_for(self.summarizer(candidates), timeout=self.timeout)
        except TimeoutError as e:
            raise CompactionFailed(f"Summarization timed out after {self.timeout}s", timed_out=True, cause=e) from e
        except CompactionFailed:
            raise
        except Exception as e:
            raise CompactionFailed(f"Summarization failed: {e}", cause=e) from e

        if not isinstance(text, str) or not text.strip():
            raise CompactionFailed("Summarizer returned no text")

        summary_item = ContextItem.create(
            kind=ItemKind.SUMMARY,
            role=ROLE_SUMMARY,
            content=format_summary(text.strip(), len(candidates)),
        )
        candidate_tokens = sum(item.estimated_tokens for item in candidates)
        if summary_item.estimated_tokens >= candidate_tokens:
            raise CompactionFailed(
                f"Summary of {summary_item.estimated_tokens} tokens does not shrink "
                f"{candidate_tokens} candidate tokens"
            )
        return summary_item

    def _failed(self, plan: CompactionPlan, error: CompactionFailed) -> CompactionResult:
        self._state = CompactionState.FAILED
        self.failure_count += 1
        self.last_error = error
        logger.warning(f"Compaction failed, ledger left unchanged: {error}")
        return CompactionResult(
            status=CompactionStatus.FAILED,
            original_tokens=plan.total_tokens,
            final_tokens=plan.total_tokens,
            items_retained=len(plan.retained),
            error=error,
        )
