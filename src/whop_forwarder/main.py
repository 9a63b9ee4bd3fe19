"""
Main application entry point for the Whop forwarder.

This module configures logging and provides the command line interface used
to run the forwarder or clear its persisted state.
"""

import argparse
import asyncio
import contextlib
import logging
import signal
import sys

import structlog

from .config import Settings, get_settings
from .exceptions import ConfigurationError
from .forwarding import build_orchestrator, build_store, start_forwarding

logger = structlog.get_logger(__name__)


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Configure structured logging."""
    logging.basicConfig(level=getattr(logging, log_level), format="%(message)s")

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.processors.JSONRenderer()
                if log_format == "json"
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


async def run(settings: Settings, interval_ms: int) -> None:
    """Forward messages until SIGINT or SIGTERM."""
    if not settings.has_credentials:
        raise ConfigurationError(
            "A Whop API key is required. Set WHOP_API_KEY (or WHOP_APP_API_KEY, "
            "WHOP_COMPANY_API_KEY) in your environment or .env file."
        )

    channels = settings.channels
    if not channels:
        logger.warning("No channels configured; set WHOP_CHANNEL_ID or WHOP_CHANNELS")

    logger.info(
        "Starting Whop forwarder",
        channels=list(channels),
        interval_ms=interval_ms,
        state_backend=settings.state_backend,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows event loops
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    orchestrator = build_orchestrator(settings)
    stop = start_forwarding(interval_ms, orchestrator=orchestrator, settings=settings)

    try:
        await stop_event.wait()
    finally:
        stop()
        await orchestrator.wait_closed()
        logger.info("Whop forwarder stopped")


def reset_state(settings: Settings) -> None:
    """Clear the persisted seen-message state."""
    store = build_store(settings)
    stats = store.get_memory_stats()
    store.reset()
    logger.info("Seen message state reset", **stats)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="whop-forwarder",
        description="Relay new Whop chat messages to a Discord webhook",
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Start forwarding (default)")
    run_parser.add_argument(
        "--interval-ms",
        type=int,
        default=None,
        help="Poll interval in milliseconds (overrides POLL_INTERVAL_MS)",
    )
    subparsers.add_parser("reset-state", help="Forget all seen messages")

    args = parser.parse_args(argv)

    interval_ms = getattr(args, "interval_ms", None)
    if interval_ms is not None and interval_ms <= 0:
        parser.error("--interval-ms must be greater than zero")

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    if args.command == "reset-state":
        reset_state(settings)
        return

    if interval_ms is None:
        interval_ms = settings.poll_interval_ms
    try:
        asyncio.run(run(settings, interval_ms))
    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")


if __name__ == "__main__":
    main()
