"""
Discord webhook delivery sink.

Relays a Whop message as a webhook post attributed to the original author.
"""

from typing import Any

import httpx
import structlog

from ..exceptions import DeliveryError
from ..models import WhopMessage
from .base import DeliverySink

logger = structlog.get_logger(__name__)


def build_webhook_payload(message: WhopMessage) -> dict[str, Any] | None:
    """
    Compose the webhook payload for a message.

    Text comes first, followed by each attachment URL, separated by blank
    lines.

    Returns:
        Payload dictionary, or None when there is nothing to send
    """
    parts = []
    if message.text:
        parts.append(message.text)
    parts.extend(message.attachment_urls)

    content = "\n\n".join(parts)
    if not content:
        return None

    payload: dict[str, Any] = {
        "content": content,
        "username": message.author_name,
    }
    if message.user and message.user.profile_pic:
        payload["avatar_url"] = message.user.profile_pic
    return payload


class DiscordWebhookSink(DeliverySink):
    """Sends messages to a Discord channel through an incoming webhook."""

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the webhook sink.

        Args:
            webhook_url: Discord webhook URL; empty disables delivery
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport, used to stub Discord in tests
        """
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    async def deliver(self, message: WhopMessage) -> bool:
        """Post one message to the webhook."""
        if not self.is_configured:
            return False

        payload = build_webhook_payload(message)
        if payload is None:
            logger.debug("Skipping message without content", message_id=message.id)
            return False

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as e:
            raise DeliveryError(
                f"Discord webhook request failed: {e}", message_id=message.id
            ) from e

        if response.is_error:
            raise DeliveryError(
                f"Discord webhook failed: {response.status_code} - {response.text}",
                message_id=message.id,
                status_code=response.status_code,
            )

        logger.debug("Message delivered", message_id=message.id)
        return True
