"""
Poll engine for the Whop forwarder.

This module diffs each fetched page of channel messages against the
seen-message store and returns only the messages not observed before.
"""

from collections.abc import Mapping
from typing import Protocol

import structlog

from ..models import Channel, WhopMessage
from ..state import SeenMessageStore
from ..whop_client import DEFAULT_PAGE_SIZE

logger = structlog.get_logger(__name__)


class MessageFetcher(Protocol):
    """Source of the latest messages of a chat feed, newest first."""

    async def fetch_messages(
        self, feed_id: str, limit: int = DEFAULT_PAGE_SIZE
    ) -> list[WhopMessage]: ...


class PollEngine:
    """
    Detects new messages per channel.

    Every fetched message is marked seen, new or not, so the seen-set tracks
    the fetch window. Messages that scroll out of the window before a poll
    sees them are never delivered.
    """

    def __init__(
        self,
        fetcher: MessageFetcher,
        store: SeenMessageStore,
        channels: Mapping[str, Channel],
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        """
        Initialize the poll engine.

        Args:
            fetcher: Client used to fetch channel messages
            store: Seen-message store shared across polls
            channels: Configured channels keyed by channel key
            page_size: Number of most recent messages fetched per poll
        """
        self.fetcher = fetcher
        self.store = store
        self.channels = dict(channels)
        self.page_size = page_size

    @property
    def channel_keys(self) -> list[str]:
        """Channel keys in configuration order."""
        return list(self.channels)

    async def poll_channel(self, channel_key: str) -> list[WhopMessage]:
        """
        Poll one channel for messages not seen before.

        Args:
            channel_key: Configured channel key

        Returns:
            New messages, oldest first. Empty for unknown channels.

        Raises:
            WhopAPIError: Fetch errors are propagated to the caller
        """
        channel = self.channels.get(channel_key)
        if channel is None:
            logger.warning(
                "Channel not found in configuration", channel_key=channel_key
            )
            return []

        messages = await self.fetcher.fetch_messages(channel.id, self.page_size)

        # Marking inside the loop also drops repeats within one page
        new_messages = []
        for message in messages:
            if self.store.has_seen(channel.id, message.id):
                continue
            self.store.mark_seen(channel.id, message.id)
            new_messages.append(message)

        if new_messages:
            self.store.persist()
            logger.info(
                "New messages detected",
                channel_key=channel_key,
                fetched=len(messages),
                new=len(new_messages),
            )

        new_messages.reverse()
        return new_messages

    def reset_seen_messages(self) -> None:
        """Forget all seen messages so the next poll treats them as new."""
        self.store.reset()
