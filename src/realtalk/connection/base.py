"""Abstractions over media capture and the realtime transport.

The agent only depends on these interfaces, which hide:
- how the microphone is opened (device names, capture backends)
- how the peer connection is negotiated and where events arrive from
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..session.models import SessionDescriptor


class ConnectionState(str, Enum):
    """Client connection state."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass
class TransportHandlers:
    """Callbacks a transport invokes on the agent's event loop."""

    on_open: Callable[[], None]
    on_message: Callable[[str | bytes], Any]
    on_state_change: Callable[[str], None]


class Microphone(ABC):
    """Audio capture source, acquired for the lifetime of one connection.

    Usage:
        async with microphone as track:
            ...
        # Capture stopped
    """

    @abstractmethod
    async def open(self) -> Any:
        """Start capturing.

        Returns:
            Audio track to send to the peer

        Raises:
            MicrophoneError: If the device cannot be opened
        """

    @abstractmethod
    async def close(self) -> None:
        """Stop capturing and release the device."""

    async def __aenter__(self) -> Any:
        return await self.open()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class RealtimeTransport(ABC):
    """Bidirectional connection to the realtime API."""

    @abstractmethod
    async def connect(
        self,
        session: SessionDescriptor,
        audio_track: Any,
        handlers: TransportHandlers,
    ) -> None:
        """Negotiate the connection.

        Args:
            session: Session whose client secret authorizes the connection
            audio_track: Local audio to send, or None for receive-only
            handlers: Callbacks for channel open, frames and state changes

        Raises:
            NegotiationError: If the remote peer refuses the offer
        """

    @abstractmethod
    def send(self, payload: dict[str, Any]) -> None:
        """Send one JSON control frame over the event channel."""

    @abstractmethod
    async def close(self) -> None:
        """Close the channel and the connection. Safe to call twice."""
