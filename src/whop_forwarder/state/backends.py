"""
Persistence backends for the seen-message store.

Provides pluggable storage for the channel id -> message ids mapping:
- File: JSON document on local disk, replaced atomically on every write
- Memory: process-local copy, used for tests and ephemeral runs
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from ..exceptions import StateStoreError

logger = logging.getLogger(__name__)


class StateBackend(ABC):
    """Abstract base class for seen-message persistence."""

    @abstractmethod
    def read(self) -> dict[str, list[str]] | None:
        """
        Read the persisted mapping.

        Returns:
            Mapping of channel id to message ids, or None if nothing is stored

        Raises:
            StateStoreError: If stored state exists but cannot be read
        """
        pass

    @abstractmethod
    def write(self, data: dict[str, list[str]]) -> None:
        """
        Replace the persisted mapping.

        Args:
            data: Mapping of channel id to message ids

        Raises:
            StateStoreError: If the state cannot be written
        """
        pass

    def describe(self) -> str:
        """Human readable location of the stored state."""
        return type(self).__name__


class JSONFileBackend(StateBackend):
    """Stores the seen-message mapping as a single JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> dict[str, list[str]] | None:
        """Read and validate the state file."""
        if not self.path.exists():
            return None

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StateStoreError(
                f"Failed to read state file: {e}", path=str(self.path)
            ) from e

        if not isinstance(raw, dict):
            raise StateStoreError(
                f"State file must contain a JSON object, got {type(raw).__name__}",
                path=str(self.path),
            )

        data: dict[str, list[str]] = {}
        for channel_id, ids in raw.items():
            if not isinstance(ids, list):
                raise StateStoreError(
                    f"Expected a list of message ids for {channel_id}",
                    path=str(self.path),
                )
            data[str(channel_id)] = [str(message_id) for message_id in ids]
        return data

    def write(self, data: dict[str, list[str]]) -> None:
        """Write the mapping to a temporary file and move it into place."""
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StateStoreError(
                f"Failed to write state file: {e}", path=str(self.path)
            ) from e

    def describe(self) -> str:
        return str(self.path)


class InMemoryBackend(StateBackend):
    """Keeps the persisted mapping in process memory."""

    def __init__(self, initial: dict[str, list[str]] | None = None) -> None:
        self._data = (
            {key: list(ids) for key, ids in initial.items()}
            if initial is not None
            else None
        )
        self.write_count = 0

    def read(self) -> dict[str, list[str]] | None:
        if self._data is None:
            return None
        return {key: list(ids) for key, ids in self._data.items()}

    def write(self, data: dict[str, list[str]]) -> None:
        self._data = {key: list(ids) for key, ids in data.items()}
        self.write_count += 1

    def describe(self) -> str:
        return "memory"


class StateBackendFactory:
    """Factory for creating the configured state backend."""

    @staticmethod
    def create_backend(kind: str, **kwargs: Any) -> StateBackend:
        """
        Create state backend instance by name.

        Args:
            kind: Backend name ('file' or 'memory')
            **kwargs: Backend options; 'path' is required for 'file'

        Returns:
            StateBackend instance

        Raises:
            ValueError: If kind is not supported or options are missing
        """
        kind = kind.lower()

        if kind == "file":
            path = kwargs.get("path")
            if not path:
                raise ValueError("The file state backend requires a 'path'")
            logger.info(f"Using JSON file state backend at {path}")
            return JSONFileBackend(path)
        elif kind == "memory":
            logger.info("Using in-memory state backend; state will not survive restarts")
            return InMemoryBackend()
        else:
            raise ValueError(
                f"Unknown state backend: {kind}. Supported backends: 'file', 'memory'"
            )

    @staticmethod
    def get_supported_backends() -> list[str]:
        """Get list of supported backend names."""
        return ["file", "memory"]
