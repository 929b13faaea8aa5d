# chuk_context_budget/summarizer.py
"""
Summarization capability used by compaction.

A summarizer is a plain async function from candidate items to summary text
(:data:`SummarizeFn`). It has no tool access and no session state, so it can
never recurse into the agent loop that triggered compaction.

Usage::

    from chuk_context_budget.summarizer import BackendSummarizer, SummarizationStrategy

    summarizer = BackendSummarizer(backend, strategy=SummarizationStrategy.KEY_POINTS)
    handle = SessionHandle(config=config, summarizer=summarizer)
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum

from chuk_context_budget.backend import GenerateResult, MessageRole, ModelBackend, Segment
from chuk_context_budget.estimator import CHARS_PER_TOKEN, estimate_segments
from chuk_context_budget.exceptions import CompactionFailed
from chuk_context_budget.models.context_item import ContextItem
from chuk_context_budget.models.item_kind import ItemKind
from chuk_context_budget.models.window_config import WindowConfig

logger = logging.getLogger(__name__)

SummarizeFn = Callable[[Sequence[ContextItem]], Awaitable[str]]
"""Callback: (candidate items) -> summary text."""


class SummarizationStrategy(str, Enum):
    """Different strategies for summarizing conversation history."""

    BASIC = "basic"  # General overview of the conversation
    KEY_POINTS = "key_points"  # Focus on key information points
    TOPIC_BASED = "topic_based"  # Organize by topics discussed
    QUERY_FOCUSED = "query_focused"  # Focus on user's questions


SUMMARY_INSTRUCTIONS: dict[SummarizationStrategy, str] = {
    SummarizationStrategy.BASIC: (
        "Provide a concise summary of this conversation. Keep the user's goals, decisions made, "
        "files and commands involved, and any open work."
    ),
    SummarizationStrategy.KEY_POINTS: (
        "Summarize this conversation as a list of the key points discussed. Keep facts, decisions, "
        "file paths and unresolved tasks."
    ),
    SummarizationStrategy.TOPIC_BASED: (
        "Summarize this conversation organized by topic. For each topic, list the key points and any "
        "decisions or pending work."
    ),
    SummarizationStrategy.QUERY_FOCUSED: (
        "Summarize this conversation by focusing on the user's questions and the answers provided. "
        "Prioritize what the user was trying to accomplish."
    ),
}

SUMMARY_REQUEST = "Summarize the conversation above. Reply with the summary only."


def get_summarization_prompt(strategy: SummarizationStrategy, max_output_tokens: int) -> str:
    """System instruction for the given strategy with an output bound."""
    instruction = SUMMARY_INSTRUCTIONS.get(strategy, SUMMARY_INSTRUCTIONS[SummarizationStrategy.BASIC])
    return (
        "You are a precise conversation summarizer. "
        f"{instruction} Use at most {max_output_tokens} tokens. Do not call tools."
    )


def item_to_segment(item: ContextItem) -> Segment:
    """Map a ledger item to a backend segment."""
    if item.kind == ItemKind.USER_MESSAGE:
        return Segment(role=MessageRole.USER, text=item.content)
    if item.kind == ItemKind.ASSISTANT_MESSAGE:
        return Segment(role=MessageRole.ASSISTANT, text=item.content)
    if item.kind == ItemKind.TOOL_OUTPUT:
        return Segment(role=MessageRole.TOOL, text=f"[{item.role}]\n{item.content}")
    return Segment(role=MessageRole.SYSTEM, text=f"Summary of earlier conversation:\n{item.content}")


def build_summary_request(
    items: Sequence[ContextItem],
    strategy: SummarizationStrategy = SummarizationStrategy.BASIC,
    max_output_tokens: int = 1024,
    max_input_tokens: int | None = None,
) -> list[Segment]:
    """
    Build the one request sent to the backend for a compaction.

    When ``max_input_tokens`` is given and the candidates do not fit, the
    newest items are kept whole and the oldest kept item is clipped.
    """
    segments = [Segment(role=MessageRole.SYSTEM, text=get_summarization_prompt(strategy, max_output_tokens))]
    closing = Segment(role=MessageRole.USER, text=SUMMARY_REQUEST)
    body = [item_to_segment(item) for item in items]

    if max_input_tokens is not None:
        remaining = max_input_tokens - estimate_segments([*segments, closing])
        body = _fit_newest(body, remaining)

    return [*segments, *body, closing]


def _fit_newest(body: list[Segment], budget_tokens: int) -> list[Segment]:
    if estimate_segments(body) <= budget_tokens:
        return body

    selected: list[Segment] = []
    remaining = budget_tokens
    for segment in reversed(body):
        cost = estimate_segments([segment])
        if cost <= remaining:
            selected.append(segment)
            remaining -= cost
            continue
        # Room left for part of this segment: keep its end
        spare_chars = (remaining - estimate_segments([Segment(role=segment.role, text="")])) * CHARS_PER_TOKEN
        if spare_chars > 0:
            selected.append(Segment(role=segment.role, text="[...] " + segment.text[-spare_chars:]))
        break

    dropped = len(body) - len(selected)
    logger.warning(f"Summary request over budget; {dropped} oldest segments dropped or clipped")
    selected.reverse()
    return selected


class BackendSummarizer:
    """
    Summarizer issuing exactly one ``generate`` call per compaction attempt.

    Errors from the backend propagate; an empty reply raises CompactionFailed.
    """

    def __init__(
        self,
        backend: ModelBackend,
        strategy: SummarizationStrategy = SummarizationStrategy.BASIC,
        max_output_tokens: int = 1024,
        max_input_tokens: int | None = None,
    ) -> None:
        self.backend = backend
        self.strategy = strategy
        self.max_output_tokens = max_output_tokens
        self.max_input_tokens = max_input_tokens
        self.last_result: GenerateResult | None = None

    @classmethod
    def from_config(
        cls,
        backend: ModelBackend,
        config: WindowConfig,
        strategy: SummarizationStrategy = SummarizationStrategy.BASIC,
    ) -> BackendSummarizer:
        """Summarizer bounded by the config's summary output cap."""
        return cls(backend, strategy=strategy, max_output_tokens=config.summary_max_tokens)

    async def __call__(self, items: Sequence[ContextItem]) -> str:
        segments = build_summary_request(
            items,
            strategy=self.strategy,
            max_output_tokens=self.max_output_tokens,
            max_input_tokens=self.max_input_tokens,
        )
        result = await self.backend.generate(segments, max_output_tokens=self.max_output_tokens)
        self.last_result = result
        summary = (result.text or "").strip()
        if not summary:
            raise CompactionFailed("Summarizer returned an empty summary")
        logger.debug(
            f"Summarized {len(items)} items: {result.usage.prompt_tokens} prompt / "
            f"{result.usage.completion_tokens} completion tokens"
        )
        return summary


def extractive_summary(items: Sequence[ContextItem], max_entries: int = 20, max_chars: int = 150) -> str:
    """
    Build a summary without a model: the first sentence of each item.

    Used when no backend is configured.
    """
    entries: list[str] = []
    for item in items:
        if item.kind == ItemKind.TOOL_OUTPUT:
            entries.append(f"- [{item.role}] returned {item.byte_size} bytes")
            continue
        first = item.content.strip().split(". ")[0].split("\n")[0].strip()
        if len(first) <= 10:
            continue
        if len(first) > max_chars:
            first = first[:max_chars] + "..."
        entries.append(f"- [{item.role}] {first}")

    if len(entries) > max_entries:
        head = max_entries // 2
        tail = max_entries - head - 1
        entries = entries[:head] + ["- ... (additional items omitted) ..."] + entries[len(entries) - tail :]

    if not entries:
        return f"Earlier conversation of {len(items)} items with no significant content."
    return "\n".join(entries)


async def extractive_summarizer(items: Sequence[ContextItem]) -> str:
    """:data:`SummarizeFn` wrapper around :func:`extractive_summary`."""
    return extractive_summary(items)
