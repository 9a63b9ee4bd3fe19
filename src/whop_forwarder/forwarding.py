"""
Forwarding entry point for the Whop forwarder.

Wires the poll engine, the orchestrator and the Discord sink together and
exposes start_forwarding(), which returns a single teardown callable.
"""

from collections.abc import Callable

import structlog

from .config import Settings, get_settings
from .delivery import DeliverySink, DiscordWebhookSink, send_batch
from .models import WhopMessage
from .polling import PollEngine, PollingOrchestrator
from .state import SeenMessageStore, StateBackendFactory
from .whop_client import WhopClient

logger = structlog.get_logger(__name__)

POLL_INTERVAL_MS = 3000


def build_store(settings: Settings) -> SeenMessageStore:
    """Create the seen-message store and load persisted state."""
    backend = StateBackendFactory.create_backend(
        settings.state_backend, path=settings.state_file
    )
    store = SeenMessageStore(backend)
    store.load()
    return store


def build_orchestrator(
    settings: Settings, store: SeenMessageStore | None = None
) -> PollingOrchestrator:
    """Create an orchestrator polling every configured channel."""
    engine = PollEngine(
        fetcher=WhopClient(settings),
        store=store if store is not None else build_store(settings),
        channels=settings.channels,
        page_size=settings.polling_config.page_size,
    )
    return PollingOrchestrator(engine)


def build_sink(settings: Settings) -> DiscordWebhookSink:
    """Create the Discord webhook sink."""
    sink = DiscordWebhookSink(settings.delivery_config.webhook_url)
    if not sink.is_configured:
        logger.warning("DISCORD_WEBHOOK_URL is not set; messages will not be sent")
    return sink


def start_forwarding(
    interval_ms: int = POLL_INTERVAL_MS,
    *,
    orchestrator: PollingOrchestrator | None = None,
    sink: DeliverySink | None = None,
    delay_seconds: float | None = None,
    settings: Settings | None = None,
) -> Callable[[], None]:
    """
    Start relaying new channel messages to the delivery sink.

    Must be called from a running event loop.

    Args:
        interval_ms: Poll interval in milliseconds
        orchestrator: Orchestrator to drive; built from settings when omitted
        sink: Delivery target; the Discord webhook sink when omitted
        delay_seconds: Pause between webhook sends; from settings when omitted
        settings: Settings used for any component not passed explicitly

    Returns:
        Idempotent callable that stops polling and unsubscribes the forwarder
    """
    if orchestrator is None or sink is None or delay_seconds is None:
        settings = settings or get_settings()
    if orchestrator is None:
        orchestrator = build_orchestrator(settings)
    if sink is None:
        sink = build_sink(settings)
    if delay_seconds is None:
        delay_seconds = settings.delivery_config.delay_ms / 1000.0

    async def forward(channel_key: str, messages: list[WhopMessage]) -> None:
        try:
            delivered = await send_batch(sink, messages, delay_seconds)
            logger.info(
                "Forwarded messages",
                channel_key=channel_key,
                received=len(messages),
                delivered=delivered,
            )
        except Exception as e:
            logger.error(
                "Failed to forward", channel_key=channel_key, error=str(e)
            )

    unsubscribe = orchestrator.subscribe(forward)
    try:
        orchestrator.start(interval_ms)
    except Exception:
        unsubscribe()
        raise

    def stop() -> None:
        orchestrator.stop()
        unsubscribe()

    return stop
