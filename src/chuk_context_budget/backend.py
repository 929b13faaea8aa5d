# chuk_context_budget/backend.py
"""
Model backend boundary.

The budget manager only ever needs one backend operation, ``generate``: a
role-tagged list of text segments in, text plus usage metadata out. Any
client (OpenAI, Gemini, a local model) can be adapted to
:class:`ModelBackend`.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Roles understood by the backend."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class Segment(BaseModel):
    """One role-tagged piece of a backend request."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.text}


class TokenUsage(BaseModel):
    """Usage metadata reported by the backend for one request."""

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class GenerateResult(BaseModel):
    """Text returned by the backend together with its usage."""

    text: str
    usage: TokenUsage = Field(default_factory=TokenUsage)


@runtime_checkable
class ModelBackend(Protocol):
    """Anything that can answer a role-tagged request with text."""

    async def generate(
        self,
        segments: list[Segment],
        *,
        max_output_tokens: int | None = None,
    ) -> GenerateResult: ...
