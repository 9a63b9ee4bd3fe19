"""
State management for the Whop forwarder.

This package provides the seen-message store and its pluggable persistence
backends.
"""

from .backends import (
    InMemoryBackend,
    JSONFileBackend,
    StateBackend,
    StateBackendFactory,
)
from .seen_store import SeenMessageStore

__all__ = [
    "SeenMessageStore",
    "StateBackend",
    "StateBackendFactory",
    "JSONFileBackend",
    "InMemoryBackend",
]
