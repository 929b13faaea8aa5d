# tests/test_storage.py
"""
Tests for checkpoint stores (in-memory and JSON files).
"""

import pytest

from chuk_context_budget.exceptions import CheckpointError
from chuk_context_budget.models.checkpoint import SessionCheckpoint
from chuk_context_budget.models.context_item import ContextItem
from chuk_context_budget.models.item_kind import ItemKind
from chuk_context_budget.storage import CheckpointStore, FileCheckpointStore, InMemoryCheckpointStore


def _checkpoint(session_id: str, config) -> SessionCheckpoint:
    return SessionCheckpoint(
        session_id=session_id,
        config=config,
        items=[
            ContextItem.create(ItemKind.USER_MESSAGE, "Find the flaky test"),
            ContextItem.create(ItemKind.TOOL_OUTPUT, "tests/test_io.py::test_read FAILED", role="tool:pytest"),
        ],
        compaction_signal_latched=True,
    )


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryCheckpointStore()
    return FileCheckpointStore(tmp_path / "checkpoints")


class TestCheckpointStores:
    def test_protocol(self, store):
        assert isinstance(store, CheckpointStore)

    @pytest.mark.asyncio
    async def test_save_and_get(self, store, small_config):
        checkpoint = _checkpoint("session-1", small_config)
        await store.save(checkpoint)

        loaded = await store.get("session-1")

        assert loaded is not None
        assert loaded.items == checkpoint.items
        assert loaded.config == small_config
        assert loaded.compaction_signal_latched is True
        assert loaded.used_tokens == checkpoint.used_tokens

    @pytest.mark.asyncio
    async def test_missing_session(self, store):
        assert await store.get("nope") is None

    @pytest.mark.asyncio
    async def test_delete_and_list(self, store, small_config):
        await store.save(_checkpoint("agent-a", small_config))
        await store.save(_checkpoint("agent-b", small_config))
        await store.save(_checkpoint("other", small_config))

        assert sorted(await store.list_sessions("agent-")) == ["agent-a", "agent-b"]

        await store.delete("agent-a")
        await store.delete("agent-a")
        assert sorted(await store.list_sessions()) == ["agent-b", "other"]


class TestFileCheckpointStore:
    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, tmp_path):
        store = FileCheckpointStore(tmp_path)
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(CheckpointError):
            await store.get("broken")

    @pytest.mark.asyncio
    async def test_path_traversal_rejected(self, tmp_path):
        store = FileCheckpointStore(tmp_path)
        with pytest.raises(CheckpointError):
            await store.get("../escape")

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, tmp_path, small_config):
        store = FileCheckpointStore(tmp_path)
        await store.save(_checkpoint("s", small_config))
        assert sorted(p.name for p in tmp_path.iterdir()) == ["s.json"]
