"""
Delivery targets for the Whop forwarder.

This package provides the sink interface, the paced batch sender and the
Discord webhook sink.
"""

from .base import DEFAULT_DELIVERY_DELAY_SECONDS, DeliverySink, send_batch
from .discord_webhook import DiscordWebhookSink, build_webhook_payload

__all__ = [
    "DEFAULT_DELIVERY_DELAY_SECONDS",
    "DeliverySink",
    "DiscordWebhookSink",
    "build_webhook_payload",
    "send_batch",
]
