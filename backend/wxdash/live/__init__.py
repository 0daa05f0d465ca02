"""Live-update subsystem.

Public API:
    BroadcastMessage    - Immutable payload shared by all subscribers
    Subscription        - One stream connection's bounded inbox
    UpdateBroker        - Archive poller and fan-out registry
    create_stream_router - FastAPI router factory for the SSE endpoint
"""

from .broker import BroadcastMessage, Subscription, UpdateBroker
from .stream import create_stream_router

__all__ = [
    "BroadcastMessage",
    "Subscription",
    "UpdateBroker",
    "create_stream_router",
]
