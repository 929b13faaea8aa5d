# chuk_context_budget/__init__.py
"""
Context window budget manager for AI agent sessions.

Components:
- Usage estimation: approximate token counts for stored content
- Ledger: ordered, append-only record of conversation items
- Truncation: head/tail bounding of oversized tool output
- Budget tracking: used/available tokens and the compaction signal
- Compaction: summarizing old history while keeping a recent tail verbatim
- SessionHandle: the shared, serialized entry point for main and sub-agents
"""

from chuk_context_budget.backend import (
    GenerateResult,
    MessageRole,
    ModelBackend,
    Segment,
    TokenUsage,
)
from chuk_context_budget.budget_tracker import BudgetTracker
from chuk_context_budget.compaction import CompactionEngine, plan_compaction, retention_boundary
from chuk_context_budget.estimator import estimate_tokens
from chuk_context_budget.exceptions import (
    CheckpointError,
    CompactionFailed,
    ContextBudgetError,
    EstimationError,
    LedgerCorruption,
)
from chuk_context_budget.ledger import Ledger
from chuk_context_budget.models import (
    BudgetSnapshot,
    CompactionResult,
    CompactionSignal,
    CompactionState,
    CompactionStatus,
    ContextItem,
    ItemKind,
    SessionCheckpoint,
    WindowConfig,
    load_window_config,
)
from chuk_context_budget.reporting import format_usage_line
from chuk_context_budget.session_handle import SessionHandle
from chuk_context_budget.storage import CheckpointStore, FileCheckpointStore, InMemoryCheckpointStore
from chuk_context_budget.summarizer import (
    BackendSummarizer,
    SummarizationStrategy,
    SummarizeFn,
    extractive_summarizer,
)
from chuk_context_budget.truncation import TruncationPolicy, TruncationResult, truncate
from chuk_context_budget.usage_tracker import TurnUsage, UsageTracker

__version__ = "0.1.0"

__all__ = [
    # Session
    "SessionHandle",
    # Models
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
    # Components
    "BudgetTracker",
    "CompactionEngine",
    "Ledger",
    "TruncationPolicy",
    "TruncationResult",
    "UsageTracker",
    "TurnUsage",
    "estimate_tokens",
    "truncate",
    "plan_compaction",
    "retention_boundary",
    "format_usage_line",
    # Summarization
    "BackendSummarizer",
    "SummarizationStrategy",
    "SummarizeFn",
    "extractive_summarizer",
    # Backend
    "GenerateResult",
    "MessageRole",
    "ModelBackend",
    "Segment",
    "TokenUsage",
    # Storage
    "CheckpointStore",
    "FileCheckpointStore",
    "InMemoryCheckpointStore",
    # Errors
    "CheckpointError",
    "CompactionFailed",
    "ContextBudgetError",
    "EstimationError",
    "LedgerCorruption",
]
