"""Exception hierarchy for realtalk.

Every error that can reach a user carries a human-readable `user_message`.
Setup errors abort the current connection attempt; session errors come from
the broker side.
"""

from typing import Any


class RealtalkError(Exception):
    """Base class for realtalk errors."""

    default_message = "Something went wrong."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        return str(self)


class SessionError(RealtalkError):
    """Creating or fetching a session failed."""

    default_message = "Failed to create a session."


class MissingAPIKeyError(SessionError):
    default_message = "OPENAI_API_KEY is not set."


class UpstreamSessionError(SessionError):
    """The realtime API rejected the session request."""

    def __init__(self, status_code: int, details: Any = None, message: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ConnectionSetupError(RealtalkError):
    """Fatal to the current connection attempt."""

    default_message = "Failed to connect."


class MicrophoneError(ConnectionSetupError):
    default_message = "Could not access the microphone."


class SessionFetchError(SessionError, ConnectionSetupError):
    """The session broker did not return a session."""

    default_message = "Failed to fetch a session."

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidSessionError(SessionError, ConnectionSetupError):
    default_message = "The session payload is invalid."


class NegotiationError(ConnectionSetupError):
    """The remote peer refused the SDP offer."""

    default_message = "Failed to connect to the OpenAI Realtime API."

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
