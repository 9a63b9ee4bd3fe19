"""
Polling system for the Whop forwarder.

This package contains the poll engine, which detects new channel messages,
and the orchestrator, which runs it on a fixed interval.
"""

from .engine import MessageFetcher, PollEngine
from .orchestrator import PollingOrchestrator

__all__ = ["MessageFetcher", "PollEngine", "PollingOrchestrator"]
