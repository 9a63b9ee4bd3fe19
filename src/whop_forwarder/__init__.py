"""
Whop forwarder

Polls Whop chat channels for new messages and relays them to a Discord
webhook without duplicates, across poll cycles and restarts.
"""

__version__ = "0.1.0"

from .config import Settings
from .exceptions import ForwarderError
from .forwarding import start_forwarding
from .polling import PollEngine, PollingOrchestrator
from .state import SeenMessageStore
from .whop_client import WhopClient

__all__ = [
    "Settings",
    "WhopClient",
    "SeenMessageStore",
    "PollEngine",
    "PollingOrchestrator",
    "ForwarderError",
    "start_forwarding",
]
