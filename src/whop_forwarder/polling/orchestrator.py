"""
Polling orchestrator for the Whop forwarder.

This module runs poll cycles over every configured channel on a fixed
interval and fans new messages out to subscribers.
"""

import asyncio
import contextlib
import inspect
import time
from collections.abc import Awaitable, Callable

import structlog

from ..models import WhopMessage
from .engine import PollEngine

logger = structlog.get_logger(__name__)

DEFAULT_INTERVAL_MS = 1000

MessageCallback = Callable[[str, list[WhopMessage]], Awaitable[None] | None]


class PollingOrchestrator:
    """
    Orchestrates poll cycles across all configured channels.

    Cycles run one at a time on a single asyncio task. Channels are polled
    sequentially and a failure in one channel never stops the others.
    """

    def __init__(
        self,
        engine: PollEngine,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the polling orchestrator.

        Args:
            engine: Poll engine used for each channel
            sleep: Coroutine used to wait between cycles
            clock: Monotonic clock used to measure cycle duration
        """
        self.engine = engine
        self.sleep = sleep
        self.clock = clock

        self._subscribers: list[MessageCallback] = []
        self._cycle_lock = asyncio.Lock()

        # Polling state
        self.is_running_flag = False
        self.polling_task: asyncio.Task[None] | None = None
        self.cycles_completed = 0

    def is_running(self) -> bool:
        """Check if polling is currently active."""
        return self.is_running_flag

    def subscribe(self, callback: MessageCallback) -> Callable[[], None]:
        """
        Register a callback for new messages.

        Callbacks receive (channel_key, messages) and may be coroutines.

        Args:
            callback: Subscriber invoked after each channel poll with new messages

        Returns:
            Function that removes this registration
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            for index, registered in enumerate(self._subscribers):
                if registered is callback:
                    del self._subscribers[index]
                    return

        return unsubscribe

    def start(self, interval_ms: int = DEFAULT_INTERVAL_MS) -> None:
        """
        Start polling on the running event loop.

        The first cycle runs immediately, then one cycle per interval.

        Args:
            interval_ms: Time between cycle starts in milliseconds
        """
        if self.is_running_flag:
            logger.warning("Polling already started")
            return

        loop = asyncio.get_running_loop()
        self.is_running_flag = True
        logger.info(
            "Starting polling orchestrator",
            interval_ms=interval_ms,
            channels=self.engine.channel_keys,
        )
        self.polling_task = loop.create_task(self._polling_loop(interval_ms / 1000.0))

    def stop(self) -> None:
        """Stop polling. Safe to call when not running."""
        if not self.is_running_flag:
            return

        logger.info("Stopping polling orchestrator")
        self.is_running_flag = False

        if self.polling_task and not self.polling_task.done():
            self.polling_task.cancel()

    async def wait_closed(self) -> None:
        """Wait for the polling task to finish after stop()."""
        if self.polling_task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await self.polling_task

    async def _polling_loop(self, interval_seconds: float) -> None:
        """Main polling loop."""
        try:
            while self.is_running_flag:
                cycle_start = self.clock()

                try:
                    await self.poll_all_channels()
                except Exception as e:
                    logger.error("Error in polling cycle", error=str(e))

                cycle_duration = self.clock() - cycle_start
                next_cycle_delay = max(0.0, interval_seconds - cycle_duration)

                if self.is_running_flag:
                    await self.sleep(next_cycle_delay)
        except asyncio.CancelledError:
            logger.info("Polling cancelled")
            raise

    async def poll_all_channels(self) -> dict[str, int]:
        """
        Run one poll cycle over every configured channel.

        Returns:
            Number of new messages per successfully polled channel key
        """
        if self._cycle_lock.locked():
            logger.warning("Poll cycle already in progress, skipping")
            return {}

        async with self._cycle_lock:
            results: dict[str, int] = {}

            for channel_key in self.engine.channel_keys:
                try:
                    messages = await self.engine.poll_channel(channel_key)
                except Exception as e:
                    logger.error(
                        "Error polling channel",
                        channel_key=channel_key,
                        error=str(e),
                    )
                    continue

                results[channel_key] = len(messages)
                if messages:
                    await self._notify_subscribers(channel_key, messages)

            self.cycles_completed += 1
            logger.debug("Polling cycle completed", results=results)
            return results

    async def _notify_subscribers(
        self, channel_key: str, messages: list[WhopMessage]
    ) -> None:
        """Invoke every subscriber in registration order."""
        for callback in list(self._subscribers):
            try:
                result = callback(channel_key, messages)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "Subscriber failed",
                    channel_key=channel_key,
                    error=str(e),
                )
