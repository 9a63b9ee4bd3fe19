"""
Per-channel record of message ids that have already been observed.

The store keeps one set of message ids per channel id in memory and mirrors
it to a StateBackend. Loading and persisting never raise: a missing or
unreadable backend only costs durability, never availability.
"""

import logging
from typing import Any

from ..exceptions import StateStoreError
from .backends import StateBackend

logger = logging.getLogger(__name__)


class SeenMessageStore:
    """Durable seen-set shared by every poll of every channel."""

    def __init__(self, backend: StateBackend) -> None:
        """
        Initialize the store.

        Args:
            backend: Persistence backend that holds the serialized state
        """
        self.backend = backend
        self._seen: dict[str, set[str]] = {}

    def load(self) -> bool:
        """
        Merge persisted state into memory.

        Returns:
            True if persisted state was found and loaded
        """
        try:
            data = self.backend.read()
        except StateStoreError as e:
            logger.error(
                f"Failed to load state from {self.backend.describe()}, "
                f"starting with empty state: {e}"
            )
            return False

        if data is None:
            logger.info(f"No persisted state at {self.backend.describe()}")
            return False

        for channel_id, message_ids in data.items():
            self._seen.setdefault(channel_id, set()).update(message_ids)

        logger.info(
            f"Loaded state from {self.backend.describe()} "
            f"({len(data)} channels)"
        )
        return True

    def has_seen(self, channel_id: str, message_id: str) -> bool:
        """Check whether a message id was already observed for a channel."""
        return message_id in self._seen.get(channel_id, ())

    def mark_seen(self, channel_id: str, message_id: str) -> None:
        """Record a message id for a channel; repeated calls are no-ops."""
        self._seen.setdefault(channel_id, set()).add(message_id)

    def seen_ids(self, channel_id: str) -> frozenset[str]:
        """Get a snapshot of the ids observed for a channel."""
        return frozenset(self._seen.get(channel_id, ()))

    def channel_ids(self) -> list[str]:
        """Get the channel ids that have state."""
        return sorted(self._seen)

    def persist(self) -> bool:
        """
        Write the full in-memory state to the backend.

        Returns:
            True if the write succeeded
        """
        data = {
            channel_id: sorted(message_ids)
            for channel_id, message_ids in self._seen.items()
        }
        try:
            self.backend.write(data)
        except StateStoreError as e:
            logger.error(
                f"Failed to persist state to {self.backend.describe()}, "
                f"continuing with in-memory state: {e}"
            )
            return False
        return True

    def reset(self) -> None:
        """Forget every observed message id and persist the empty state."""
        for message_ids in self._seen.values():
            message_ids.clear()
        self.persist()
        logger.info("Cleared seen message state")

    def get_memory_stats(self) -> dict[str, Any]:
        """Get memory usage statistics."""
        return {
            "channels_count": len(self._seen),
            "message_ids_count": sum(len(ids) for ids in self._seen.values()),
        }
