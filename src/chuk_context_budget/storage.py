# chuk_context_budget/storage.py
"""
Checkpoint stores.

A checkpoint store is a small document store keyed by session id. Two
implementations are provided: an in-memory store for tests and short-lived
processes, and a JSON file store (one ``<session_id>.json`` per session).
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from chuk_context_budget.exceptions import CheckpointError
from chuk_context_budget.models.checkpoint import SessionCheckpoint

logger = logging.getLogger(__name__)


@runtime_checkable
class CheckpointStore(Protocol):
    """Persistence boundary for session checkpoints."""

    async def get(self, session_id: str) -> SessionCheckpoint | None: ...

    async def save(self, checkpoint: SessionCheckpoint) -> None: ...

    async def delete(self, session_id: str) -> None: ...

    async def list_sessions(self, prefix: str = "") -> list[str]: ...


class InMemoryCheckpointStore:
    """Checkpoint store backed by a dict."""

    def __init__(self) -> None:
        self._checkpoints: dict[str, SessionCheckpoint] = {}

    async def get(self, session_id: str) -> SessionCheckpoint | None:
        return self._checkpoints.get(session_id)

    async def save(self, checkpoint: SessionCheckpoint) -> None:
        self._checkpoints[checkpoint.session_id] = checkpoint

    async def delete(self, session_id: str) -> None:
        self._checkpoints.pop(session_id, None)

    async def list_sessions(self, prefix: str = "") -> list[str]:
        return [sid for sid in self._checkpoints if sid.startswith(prefix)]


class FileCheckpointStore:
    """Checkpoint store writing one JSON document per session."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str) -> Path:
        if not session_id or "/" in session_id or "\\" in session_id or session_id.startswith("."):
            raise CheckpointError(f"Invalid session id for file storage: {session_id!r}")
        return self.directory / f"{session_id}.json"

    async def get(self, session_id: str) -> SessionCheckpoint | None:
        path = self._path(session_id)
        if not path.exists():
            return None
        raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        try:
            return SessionCheckpoint.model_validate_json(raw)
        except ValidationError as e:
            raise CheckpointError(f"Checkpoint {path} is not valid: {e}") from e

    async def save(self, checkpoint: SessionCheckpoint) -> None:
        path = self._path(checkpoint.session_id)
        tmp_path = path.with_suffix(".json.tmp")
        payload = checkpoint.model_dump_json(indent=2)
        await asyncio.to_thread(tmp_path.write_text, payload, encoding="utf-8")
        # Temp file first, then renamed into place
        await asyncio.to_thread(tmp_path.replace, path)
        logger.debug(f"Saved checkpoint for {checkpoint.session_id} ({len(checkpoint.items)} items) to {path}")

    async def delete(self, session_id: str) -> None:
        path = self._path(session_id)
        await asyncio.to_thread(path.unlink, missing_ok=True)

    async def list_sessions(self, prefix: str = "") -> list[str]:
        return sorted(p.stem for p in self.directory.glob("*.json") if p.stem.startswith(prefix))
