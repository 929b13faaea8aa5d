# chuk_context_budget/models/context_item.py
"""Immutable conversation item record."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from chuk_context_budget.estimator import estimate_tokens_safe
from chuk_context_budget.models.item_kind import ItemKind

# Default roles per kind; tool output uses "tool:<name>"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_SUMMARY = "summary"
TOOL_ROLE_PREFIX = "tool:"


class ContextItem(BaseModel):
    """
    One entry of the conversation ledger.

    Records are frozen once created. ``estimated_tokens`` is a property of the
    stored ``content`` and is computed exactly once, in :meth:`create`;
    compaction builds new records instead of editing old ones.
    """

    model_config = ConfigDict(frozen=True)

    item_id: str = Field(default_factory=lambda: uuid4().hex)
    kind: ItemKind
    role: str
    content: str
    estimated_tokens: int = Field(ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    truncated: bool = False

    @property
    def byte_size(self) -> int:
        """UTF-8 size of the stored content."""
        return len(self.content.encode("utf-8", "surrogatepass"))

    @property
    def tool_name(self) -> str | None:
        """Tool name for ``tool:<name>`` roles."""
        if self.role.startswith(TOOL_ROLE_PREFIX):
            return self.role[len(TOOL_ROLE_PREFIX) :]
        return None

    @classmethod
    def create(
        cls,
        kind: ItemKind,
        content: str,
        role: str | None = None,
        truncated: bool = False,
    ) -> ContextItem:
        """Build an item, estimating its tokens from ``content``."""
        if role is None:
            role = _default_role(kind)
        return cls(
            kind=kind,
            role=role,
            content=content,
            estimated_tokens=estimate_tokens_safe(content),
            truncated=truncated,
        )


def _default_role(kind: ItemKind) -> str:
    if kind == ItemKind.USER_MESSAGE:
        return ROLE_USER
    if kind == ItemKind.ASSISTANT_MESSAGE:
        return ROLE_ASSISTANT
    if kind == ItemKind.SUMMARY:
        return ROLE_SUMMARY
    return f"{TOOL_ROLE_PREFIX}unknown"
