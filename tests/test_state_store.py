"""
Tests for the seen-message store and its persistence backends.
"""

import json
from unittest.mock import Mock

import pytest

from whop_forwarder.exceptions import StateStoreError
from whop_forwarder.state import (
    InMemoryBackend,
    JSONFileBackend,
    SeenMessageStore,
    StateBackendFactory,
)


class TestSeenMessageStore:
    """Test the in-memory behaviour of SeenMessageStore."""

    def setup_method(self):
        """Set up test fixtures."""
        self.backend = InMemoryBackend()
        self.store = SeenMessageStore(self.backend)

    def test_mark_seen_and_has_seen(self):
        """Test marking ids per channel."""
        assert self.store.has_seen("feed_a", "msg1") is False

        self.store.mark_seen("feed_a", "msg1")

        assert self.store.has_seen("feed_a", "msg1") is True
        assert self.store.has_seen("feed_b", "msg1") is False

    def test_mark_seen_is_idempotent(self):
        """Test that marking an id twice keeps a single entry."""
        self.store.mark_seen("feed_a", "msg1")
        self.store.mark_seen("feed_a", "msg1")

        assert self.store.seen_ids("feed_a") == frozenset({"msg1"})
        assert self.store.get_memory_stats() == {
            "channels_count": 1,
            "message_ids_count": 1,
        }

    def test_persist_writes_full_state(self):
        """Test that persist serializes every channel."""
        self.store.mark_seen("feed_a", "msg2")
        self.store.mark_seen("feed_a", "msg1")
        self.store.mark_seen("feed_b", "msg3")

        assert self.store.persist() is True

        assert self.backend.read() == {
            "feed_a": ["msg1", "msg2"],
            "feed_b": ["msg3"],
        }

    def test_load_merges_persisted_state(self):
        """Test that load merges into existing in-memory state."""
        backend = InMemoryBackend({"feed_a": ["msg1", "msg2"]})
        store = SeenMessageStore(backend)
        store.mark_seen("feed_a", "msg0")

        assert store.load() is True

        assert store.seen_ids("feed_a") == frozenset({"msg0", "msg1", "msg2"})

    def test_load_without_persisted_state(self):
        """Test that load with nothing stored leaves an empty store."""
        assert self.store.load() is False
        assert self.store.channel_ids() == []

    def test_load_failure_is_not_fatal(self):
        """Test that unreadable state is logged and ignored."""
        backend = Mock()
        backend.read.side_effect = StateStoreError("corrupt", path="state.json")
        backend.describe.return_value = "state.json"
        store = SeenMessageStore(backend)

        assert store.load() is False
        assert store.channel_ids() == []

    def test_persist_failure_keeps_memory_state(self):
        """Test that write errors do not lose in-memory state."""
        backend = Mock()
        backend.write.side_effect = StateStoreError("disk full", path="state.json")
        backend.describe.return_value = "state.json"
        store = SeenMessageStore(backend)
        store.mark_seen("feed_a", "msg1")

        assert store.persist() is False
        assert store.has_seen("feed_a", "msg1") is True

    def test_reset_clears_and_persists(self):
        """Test that reset forgets every id and persists immediately."""
        self.store.mark_seen("feed_a", "msg1")
        self.store.mark_seen("feed_b", "msg2")

        self.store.reset()

        assert self.store.has_seen("feed_a", "msg1") is False
        assert self.store.has_seen("feed_b", "msg2") is False
        assert self.backend.write_count == 1
        assert self.backend.read() == {"feed_a": [], "feed_b": []}


class TestJSONFileBackend:
    """Test the JSON file backend."""

    def test_round_trip_through_fresh_store(self, tmp_path):
        """Test that a restarted store sees the same membership."""
        path = tmp_path / "state.json"
        store = SeenMessageStore(JSONFileBackend(path))
        for message_id in ("msg3", "msg1", "msg2"):
            store.mark_seen("feed_a", message_id)
        store.mark_seen("feed_b", "msg9")
        store.persist()

        restarted = SeenMessageStore(JSONFileBackend(path))
        assert restarted.load() is True

        assert restarted.seen_ids("feed_a") == {"msg1", "msg2", "msg3"}
        assert restarted.seen_ids("feed_b") == {"msg9"}

    def test_file_format(self, tmp_path):
        """Test that the file maps channel ids to id lists."""
        path = tmp_path / "state.json"
        JSONFileBackend(path).write({"feed_a": ["msg1"]})

        assert json.loads(path.read_text(encoding="utf-8")) == {"feed_a": ["msg1"]}
        assert list(tmp_path.iterdir()) == [path]

    def test_missing_file_reads_none(self, tmp_path):
        """Test that a missing file means no state."""
        assert JSONFileBackend(tmp_path / "missing.json").read() is None

    def test_corrupt_file_raises(self, tmp_path):
        """Test that invalid JSON raises StateStoreError."""
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StateStoreError, match="Failed to read state file"):
            JSONFileBackend(path).read()

    def test_wrong_shape_raises(self, tmp_path):
        """Test that a non-object document raises StateStoreError."""
        path = tmp_path / "state.json"
        path.write_text('["msg1"]', encoding="utf-8")

        with pytest.raises(StateStoreError, match="JSON object"):
            JSONFileBackend(path).read()

    def test_corrupt_file_does_not_block_store(self, tmp_path):
        """Test that a store starts empty over a corrupt file."""
        path = tmp_path / "state.json"
        path.write_text("garbage", encoding="utf-8")
        store = SeenMessageStore(JSONFileBackend(path))

        assert store.load() is False

        store.mark_seen("feed_a", "msg1")
        assert store.persist() is True
        assert json.loads(path.read_text(encoding="utf-8")) == {"feed_a": ["msg1"]}

    def test_undecodable_file_does_not_block_store(self, tmp_path):
        """Test that invalid UTF-8 in the state file is treated as corrupt."""
        path = tmp_path / "state.json"
        path.write_bytes(b'{"feed": ["\xff\xfe"]}')

        with pytest.raises(StateStoreError, match="Failed to read state file"):
            JSONFileBackend(path).read()

        store = SeenMessageStore(JSONFileBackend(path))
        assert store.load() is False
        assert store.channel_ids() == []

    def test_write_creates_parent_directory(self, tmp_path):
        """Test that writes create missing directories."""
        path = tmp_path / "nested" / "dir" / "state.json"

        JSONFileBackend(path).write({})

        assert path.exists()


class TestStateBackendFactory:
    """Test the StateBackendFactory class."""

    def test_create_file_backend(self, tmp_path):
        backend = StateBackendFactory.create_backend(
            "file", path=str(tmp_path / "state.json")
        )
        assert isinstance(backend, JSONFileBackend)

    def test_create_memory_backend(self):
        backend = StateBackendFactory.create_backend("MEMORY")
        assert isinstance(backend, InMemoryBackend)

    def test_file_backend_requires_path(self):
        with pytest.raises(ValueError, match="requires a 'path'"):
            StateBackendFactory.create_backend("file")

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown state backend: redis"):
            StateBackendFactory.create_backend("redis")

    def test_supported_backends(self):
        assert StateBackendFactory.get_supported_backends() == ["file", "memory"]
