# chuk_context_budget/exceptions.py
"""
Exception hierarchy for the context budget manager.

Recoverability differs by class:

- ``EstimationError``: malformed content; callers fall back to a byte-length
  heuristic and the conversation continues.
- ``CompactionFailed``: the summarization step failed or timed out; the ledger
  is untouched and the compaction signal stays latched.
- ``LedgerCorruption``: token accounting can no longer be trusted; the owning
  session halts and refuses further mutations.
"""

from __future__ import annotations


class ContextBudgetError(Exception):
    """Base class for all context budget errors."""


class EstimationError(ContextBudgetError):
    """Raised when content cannot be measured (wrong type, unencodable text)."""

    def __init__(self, message: str, content_type: str | None = None):
        self.content_type = content_type
        super().__init__(message)


class CompactionFailed(ContextBudgetError):
    """Raised when a compaction attempt could not produce a usable summary."""

    def __init__(self, message: str, *, timed_out: bool = False, cause: BaseException | None = None):
        self.timed_out = timed_out
        self.cause = cause
        super().__init__(message)


class LedgerCorruption(ContextBudgetError):
    """Raised when a ledger invariant is violated. Fatal to the session."""

    def __init__(self, message: str, session_id: str | None = None):
        self.session_id = session_id
        if session_id:
            message = f"[session {session_id}] {message}"
        super().__init__(message)


class CheckpointError(ContextBudgetError):
    """Raised when a checkpoint cannot be decoded or restored."""
