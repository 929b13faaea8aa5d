# chuk_context_budget/models/item_kind.py
from enum import Enum


class ItemKind(str, Enum):
    """Kind of a conversation item held in the ledger."""

    USER_MESSAGE = "user_message"
    ASSISTANT_MESSAGE = "assistant_message"
    TOOL_OUTPUT = "tool_output"
    SUMMARY = "summary"  # Produced by compaction only
