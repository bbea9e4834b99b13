"""Connection module for realtalk.

Manages the lifecycle of one realtime voice session: microphone, session,
transport and transcript.
"""

from .agent import RealtimeAgent
from .base import ConnectionState, Microphone, RealtimeTransport, TransportHandlers

__all__ = [
    "ConnectionState",
    "MediaPlayerMicrophone",
    "Microphone",
    "RealtimeAgent",
    "RealtimeTransport",
    "TransportHandlers",
    "WebRTCTransport",
]


def __getattr__(name):
    """Lazy import so the agent can be used without loading aiortc."""
    if name in ("MediaPlayerMicrophone", "WebRTCTransport"):
        from . import webrtc
        return getattr(webrtc, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
