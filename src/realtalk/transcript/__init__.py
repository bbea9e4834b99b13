"""Transcript reconciliation module for realtalk.

Turns the realtime event stream into a renderable message list.
"""

from .events import MalformedEventError, TranscriptEvent, decode_frame, parse_event
from .extraction import extract_response_text, extract_text, normalize_delta
from .models import Message, MessageListDelta, Role, TranscriptState
from .reconciler import TranscriptReconciler

__all__ = [
    "MalformedEventError",
    "Message",
    "MessageListDelta",
    "Role",
    "TranscriptEvent",
    "TranscriptReconciler",
    "TranscriptState",
    "decode_frame",
    "extract_response_text",
    "extract_text",
    "normalize_delta",
    "parse_event",
]
