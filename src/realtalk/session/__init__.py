"""Session module for realtalk.

Issues and fetches short-lived realtime session descriptors.
"""

from .base import SessionBroker
from .factory import create_session_broker
from .models import ClientSecret, SessionDescriptor, SessionErrorBody
from .providers import HTTPSessionBroker, OpenAISessionBroker

__all__ = [
    "ClientSecret",
    "HTTPSessionBroker",
    "OpenAISessionBroker",
    "SessionBroker",
    "SessionDescriptor",
    "SessionErrorBody",
    "create_session_broker",
]
