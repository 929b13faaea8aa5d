# chuk_context_budget/models/__init__.py
"""
Data models for the context budget manager.
"""

from chuk_context_budget.models.budget import BudgetSnapshot, CompactionSignal
from chuk_context_budget.models.checkpoint import SessionCheckpoint
from chuk_context_budget.models.compaction import (
    CompactionResult,
    CompactionState,
    CompactionStatus,
)
from chuk_context_budget.models.context_item import ContextItem
from chuk_context_budget.models.item_kind import ItemKind
from chuk_context_budget.models.window_config import WindowConfig, load_window_config

__all__ = [
    "BudgetSnapshot",
    "CompactionResult",
    "CompactionSignal",
    "CompactionState",
    "CompactionStatus",
    "ContextItem",
    "ItemKind",
    "SessionCheckpoint",
    "WindowConfig",
    "load_window_config",
]
