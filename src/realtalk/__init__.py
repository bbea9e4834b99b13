"""
realtalk: talk to a realtime voice agent and watch the transcript as it streams.

The transcript module is the core; session and connection wrap the
realtime API around it.
"""

__version__ = "0.1.0"

from .transcript import (
    Message,
    MessageListDelta,
    Role,
    TranscriptReconciler,
)

__all__ = [
    "Message",
    "MessageListDelta",
    "Role",
    "TranscriptReconciler",
]
