"""
Pytest configuration and fixtures for Whop forwarder tests.
"""

from collections.abc import Callable
from typing import Any

import pytest

from whop_forwarder.config import Settings
from whop_forwarder.models import Channel, WhopMessage
from whop_forwarder.state import InMemoryBackend, SeenMessageStore


class FakeFetcher:
    """Stands in for WhopClient, serving canned pages per feed id."""

    def __init__(self) -> None:
        self.pages: dict[str, list[WhopMessage]] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, int]] = []

    async def fetch_messages(self, feed_id: str, limit: int = 50) -> list[WhopMessage]:
        self.calls.append((feed_id, limit))
        if feed_id in self.errors:
            raise self.errors[feed_id]
        return list(self.pages.get(feed_id, []))[:limit]


class RecordingSink:
    """Delivery sink that records every message it is asked to send."""

    def __init__(self, fail_ids: set[str] | None = None) -> None:
        self.delivered: list[str] = []
        self.fail_ids = fail_ids or set()

    async def deliver(self, message: WhopMessage) -> bool:
        if message.id in self.fail_ids:
            raise RuntimeError(f"cannot deliver {message.id}")
        self.delivered.append(message.id)
        return True


@pytest.fixture
def make_message() -> Callable[..., WhopMessage]:
    """Factory for chat messages."""

    def _make(
        message_id: str, content: str = "hello", **overrides: Any
    ) -> WhopMessage:
        data: dict[str, Any] = {
            "id": message_id,
            "userId": "user_1",
            "content": content,
            "createdAt": "2024-01-15T10:00:00Z",
            "feedId": "feed_1",
            "feedType": "chat_feed",
            "isPosterAdmin": False,
            "mentionedUserIds": [],
            "fileAttachments": [],
            "user": {"id": "user_1", "username": "testuser", "name": "Test User"},
        }
        data.update(overrides)
        return WhopMessage.model_validate(data)

    return _make


@pytest.fixture
def channels() -> dict[str, Channel]:
    """Two configured channels."""
    return {
        "ONLINE_SUCCESS": Channel(
            key="ONLINE_SUCCESS", id="chat_feed_online", name="Online Success"
        ),
        "PROFITS": Channel(key="PROFITS", id="chat_feed_profits", name="Profits"),
    }


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def memory_backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def seen_store(memory_backend: InMemoryBackend) -> SeenMessageStore:
    return SeenMessageStore(memory_backend)


@pytest.fixture
def make_sink() -> Callable[..., RecordingSink]:
    """Factory for recording sinks, optionally failing for some message ids."""
    return RecordingSink


@pytest.fixture
def mock_settings(tmp_path) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        whop_api_key="apik_test_key",
        whop_app_api_key="",
        whop_company_api_key="",
        whop_company_key="",
        whop_company_id="",
        whop_channel_id="chat_feed_test",
        whop_channels="",
        discord_webhook_url="https://discord.com/api/webhooks/mock",
        state_backend="file",
        state_file=str(tmp_path / "state.json"),
        log_level="DEBUG",
    )
