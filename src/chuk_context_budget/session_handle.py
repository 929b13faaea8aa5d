# chuk_context_budget/session_handle.py
"""
SessionHandle - the one object every cooperating agent shares.

The main agent and any delegated sub-agents hold a reference to the same
handle. All ledger mutations (appends, compaction replacement, clear) go
through a single ``asyncio.Lock``; snapshots read the ledger's current
immutable tuple without locking.

Examples:
    Basic usage:
    ```python
    handle = SessionHandle(config=load_window_config("gpt-4o"))
    signal = await handle.append_user_message("Refactor the parser")
    await handle.append_tool_output("grep", raw_output)
    if signal:
        result = await handle.request_compaction_if_needed()
    print(handle.usage_line())
    ```

    Sharing with a sub-agent:
    ```python
    async def sub_agent(handle: SessionHandle) -> None:
        await handle.append_assistant_message("Found 3 call sites")

    await asyncio.gather(main_turn(handle), sub_agent(handle))
    ```
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Sequence

from chuk_context_budget.backend import MessageRole, Segment
from chuk_context_budget.budget_tracker import BudgetTracker
from chuk_context_budget.compaction import CompactionEngine
from chuk_context_budget.estimator import estimate_segments, estimate_tokens_safe
from chuk_context_budget.exceptions import LedgerCorruption
from chuk_context_budget.ledger import Ledger
from chuk_context_budget.models.budget import BudgetSnapshot, CompactionSignal
from chuk_context_budget.models.checkpoint import SessionCheckpoint
from chuk_context_budget.models.compaction import CompactionResult, CompactionState, CompactionStatus
from chuk_context_budget.models.context_item import TOOL_ROLE_PREFIX, ContextItem
from chuk_context_budget.models.item_kind import ItemKind
from chuk_context_budget.models.window_config import WindowConfig, load_window_config
from chuk_context_budget.reporting import format_usage_line
from chuk_context_budget.storage import CheckpointStore
from chuk_context_budget.summarizer import SummarizeFn, extractive_summarizer, item_to_segment
from chuk_context_budget.truncation import TruncationPolicy
from chuk_context_budget.usage_tracker import UsageTracker

logger = logging.getLogger(__name__)


class SessionHandle:
    """
    Shared, serialized access to one session's ledger and budget.

    Compaction is advisory: crossing the threshold only returns a
    :class:`CompactionSignal` from the append call. The caller decides when to
    call :meth:`request_compaction_if_needed` (or :meth:`compact`).
    """

    def __init__(
        self,
        session_id: str | None = None,
        config: WindowConfig | None = None,
        summarizer: SummarizeFn | None = None,
    ):
        """
        Initialize a SessionHandle.

        Args:
            session_id: Optional session ID. If not provided, a new one is generated.
            config: Window configuration. Defaults to :func:`load_window_config`.
            summarizer: Async (items) -> summary function used for compaction.
                Defaults to the offline extractive summarizer.
        """
        self._session_id = session_id or str(uuid.uuid4())
        self._config = config or load_window_config()
        self._ledger = Ledger(session_id=self._session_id)
        self._tracker = BudgetTracker(self._ledger, self._config)
        self._truncation = TruncationPolicy.from_config(self._config)
        self._engine = CompactionEngine(
            summarizer=summarizer or extractive_summarizer,
            retention_budget=self._config.retention_budget,
            timeout=self._config.summarization_timeout,
        )
        self._usage = UsageTracker(session_id=self._session_id, model_name=self._config.model_name)
        self._lock = asyncio.Lock()
        self._halted: LedgerCorruption | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def config(self) -> WindowConfig:
        return self._config

    @property
    def items(self) -> tuple[ContextItem, ...]:
        """Current ledger items (immutable view)."""
        return self._ledger.items

    @property
    def item_count(self) -> int:
        return len(self._ledger)

    @property
    def usage(self) -> UsageTracker:
        """Per-turn usage reported by the backend."""
        return self._usage

    @property
    def halted(self) -> bool:
        return self._halted is not None

    @property
    def compacting(self) -> bool:
        return self._engine.in_flight

    @property
    def compaction_state(self) -> CompactionState:
        return self._engine.state

    @property
    def compaction_signal(self) -> CompactionSignal | None:
        return self._tracker.signal

    @property
    def compaction_count(self) -> int:
        return self._engine.compaction_count

    # ------------------------------------------------------------------
    # Appends
    # ------------------------------------------------------------------

    async def append_item(self, item: ContextItem) -> CompactionSignal | None:
        """
        Append an item to the shared ledger.

        Tool output is bounded by the truncation policy before it is stored.

        Returns:
            The latched compaction signal when usage is at or over the
            threshold, otherwise None.

        Raises:
            LedgerCorruption: If the item breaks a ledger invariant (the session
                halts) or the session has already halted.
        """
        if item.kind == ItemKind.TOOL_OUTPUT:
            item = self._bound_tool_output(item)

        async with self._lock:
            self._ensure_writable()
            try:
                self._ledger.append(item)
            except LedgerCorruption as e:
                self._halt(e)
                raise
            return self._tracker.check_after_append()

    async def append_user_message(self, text: str) -> CompactionSignal | None:
        """Record a user turn."""
        return await self.append_item(ContextItem.create(ItemKind.USER_MESSAGE, text))

    async def append_assistant_message(self, text: str) -> CompactionSignal | None:
        """Record an assistant turn."""
        return await self.append_item(ContextItem.create(ItemKind.ASSISTANT_MESSAGE, text))

    async def append_tool_output(self, tool_name: str, output: str | bytes) -> CompactionSignal | None:
        """
        Record raw tool output.

        The dispatcher hands over output untouched; truncation happens here.
        """
        text, truncated = self._truncation.apply_text(output)
        if truncated:
            logger.debug(f"Tool output from {tool_name} truncated to {len(text)} chars")
        item = ContextItem.create(
            ItemKind.TOOL_OUTPUT,
            text,
            role=f"{TOOL_ROLE_PREFIX}{tool_name}",
            truncated=truncated,
        )
        return await self.append_item(item)

    def _bound_tool_output(self, item: ContextItem) -> ContextItem:
        text, truncated = self._truncation.apply_text(item.content)
        if not truncated:
            return item
        return ContextItem(
            item_id=item.item_id,
            kind=item.kind,
            role=item.role,
            content=text,
            estimated_tokens=estimate_tokens_safe(text),
            created_at=item.created_at,
            truncated=True,
        )

    # ------------------------------------------------------------------
    # Budget
    # ------------------------------------------------------------------

    def snapshot(self) -> BudgetSnapshot:
        """Current budget, recomputed from the ledger. Lock-free."""
        return self._tracker.snapshot()

    def usage_line(self) -> str:
        """Human-readable budget line for the status bar."""
        return format_usage_line(self.snapshot())

    def history(self, system_prompt: str | None = None) -> list[Segment]:
        """Role-tagged segments for the next model request."""
        segments = [item_to_segment(item) for item in self._ledger.items]
        if system_prompt:
            segments.insert(0, Segment(role=MessageRole.SYSTEM, text=system_prompt))
        return segments

    def estimate_request_tokens(self, extra: Sequence[Segment] = (), system_prompt: str | None = None) -> int:
        """Estimated size of a request built from history plus ``extra``."""
        return estimate_segments([*self.history(system_prompt), *extra])

    def request_fits(self, extra: Sequence[Segment] = (), system_prompt: str | None = None) -> bool:
        """Whether such a request fits the window minus reserved output."""
        return self.estimate_request_tokens(extra, system_prompt) <= self._config.effective_window

    # ------------------------------------------------------------------
    # Compaction
    # ------------------------------------------------------------------

    async def request_compaction_if_needed(self) -> CompactionResult:
        """
        Compact if the compaction signal is latched.

        Returns NOT_NEEDED when no signal is latched, COALESCED when another
        compaction is already running.
        """
        self._ensure_writable()
        if not self._tracker.latched:
            used = self._ledger.used_tokens
            return CompactionResult(status=CompactionStatus.NOT_NEEDED, original_tokens=used, final_tokens=used)
        return await self.compact()

    async def compact(self) -> CompactionResult:
        """
        Run one compaction now, regardless of the signal.

        A FAILED result is a warning, not an error: the ledger is unchanged,
        the signal stays latched and the conversation can continue over
        budget.
        """
        self._ensure_writable()
        try:
            result = await self._engine.compact(self._ledger, self._lock)
        except LedgerCorruption as e:
            self._halt(e)
            raise

        if result.status == CompactionStatus.COMPACTED:
            async with self._lock:
                self._tracker.clear_latch()
                signal = self._tracker.check_after_append()
            self._usage.record_compaction()
            if signal is not None:
                logger.warning(f"Session {self._session_id} still over threshold after compaction: {self.usage_line()}")
        elif result.status == CompactionStatus.FAILED:
            logger.warning(f"Session {self._session_id} continuing over budget: {self.usage_line()}")
        return result

    # ------------------------------------------------------------------
    # Backend usage and calibration
    # ------------------------------------------------------------------

    def record_turn_usage(self, input_tokens: int, output_tokens: int) -> None:
        """
        Record usage reported by the backend for a turn.

        An ``input_tokens`` figure above the ledger estimate means the
        estimator under-counted; it is logged as a calibration signal.
        """
        self._usage.record_turn(input_tokens, output_tokens)
        estimated = self._ledger.used_tokens
        if input_tokens > estimated:
            logger.info(
                f"Calibration: backend counted {input_tokens} input tokens, "
                f"ledger estimate is {estimated} for session {self._session_id}"
            )

    def record_backend_rejection(
        self,
        requested_tokens: int | None = None,
        reported_limit: int | None = None,
    ) -> BudgetSnapshot:
        """
        Log a backend rejection of an oversized request.

        Such a rejection means the estimate under-counted; the event is logged
        as a calibration signal with the current snapshot.
        """
        snapshot = self.snapshot()
        logger.error(
            f"Backend rejected oversized request for session {self._session_id}: "
            f"estimated {snapshot.used_tokens} tokens, backend counted {requested_tokens} "
            f"against limit {reported_limit or self._config.window_size} (calibration signal)"
        )
        return snapshot

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def clear(self) -> None:
        """Drop all items and release the compaction latch."""
        async with self._lock:
            self._ensure_writable()
            self._ledger.clear()
            self._tracker.clear_latch()
        logger.debug(f"Cleared ledger for session {self._session_id}")

    def checkpoint(self) -> SessionCheckpoint:
        """Serializable copy of the ledger, config and latch state."""
        return SessionCheckpoint(
            session_id=self._session_id,
            config=self._config,
            items=list(self._ledger.items),
            compaction_signal_latched=self._tracker.latched,
        )

    @classmethod
    def restore(cls, checkpoint: SessionCheckpoint, summarizer: SummarizeFn | None = None) -> SessionHandle:
        """
        Rebuild a handle from a checkpoint.

        Raises:
            LedgerCorruption: If the checkpointed items break a ledger invariant.
        """
        handle = cls(session_id=checkpoint.session_id, config=checkpoint.config, summarizer=summarizer)
        for item in checkpoint.items:
            handle._ledger.append(item)
        if checkpoint.compaction_signal_latched:
            handle._tracker.latch()
        logger.debug(f"Restored session {checkpoint.session_id} with {len(checkpoint.items)} items")
        return handle

    async def save(self, store: CheckpointStore) -> SessionCheckpoint:
        """Checkpoint into ``store``."""
        checkpoint = self.checkpoint()
        await store.save(checkpoint)
        return checkpoint

    @classmethod
    async def load(
        cls,
        store: CheckpointStore,
        session_id: str,
        summarizer: SummarizeFn | None = None,
    ) -> SessionHandle | None:
        """Restore a handle from ``store``; None if the session is unknown."""
        checkpoint = await store.get(session_id)
        if checkpoint is None:
            return None
        return cls.restore(checkpoint, summarizer=summarizer)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_writable(self) -> None:
        if self._halted is not None:
            raise LedgerCorruption("Session halted after ledger corruption", self._session_id) from self._halted

    def _halt(self, error: LedgerCorruption) -> None:
        self._halted = error
        logger.critical(f"Ledger corruption in session {self._session_id}; halting further appends: {error}")
