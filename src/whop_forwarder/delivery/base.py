"""
Delivery sink interface and batch pacing.

This module defines the contract every notification target implements and
the paced loop used to send a batch of messages to one.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence

import structlog

from ..exceptions import BatchDeliveryError
from ..models import WhopMessage

logger = structlog.get_logger(__name__)

DEFAULT_DELIVERY_DELAY_SECONDS = 0.5


class DeliverySink(ABC):
    """
    Abstract base class for notification targets.

    Implementations send one message per call and raise DeliveryError when
    the target rejects it.
    """

    @abstractmethod
    async def deliver(self, message: WhopMessage) -> bool:
        """
        Send a single message.

        Args:
            message: Message to relay

        Returns:
            True if a notification was sent, False if it was skipped

        Raises:
            DeliveryError: If the target rejected the message
        """
        pass


async def send_batch(
    sink: DeliverySink,
    messages: Sequence[WhopMessage],
    delay_seconds: float = DEFAULT_DELIVERY_DELAY_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> int:
    """
    Deliver messages one at a time with a fixed pause between sends.

    Every message is attempted exactly once, in order, even when earlier
    deliveries fail.

    Args:
        sink: Target to deliver to
        messages: Messages in delivery order
        delay_seconds: Pause between consecutive deliveries
        sleep: Coroutine used for the pause

    Returns:
        Number of messages the sink actually sent

    Raises:
        BatchDeliveryError: After the last attempt, if any delivery failed
    """
    delivered = 0
    failures: list[tuple[str, Exception]] = []

    for index, message in enumerate(messages):
        if index > 0 and delay_seconds > 0:
            await sleep(delay_seconds)

        try:
            if await sink.deliver(message):
                delivered += 1
        except Exception as e:
            logger.error("Delivery failed", message_id=message.id, error=str(e))
            failures.append((message.id, e))

    if failures:
        raise BatchDeliveryError(failures, attempted=len(messages))

    return delivered
