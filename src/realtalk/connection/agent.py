"""Connection lifecycle of a realtime voice session.

The agent owns the microphone, the transport and the transcript reconciler
for one connection at a time. Everything acquired in `connect()` is held by
an AsyncExitStack and released on every exit path.
"""

import asyncio
import logging
from collections.abc import Callable
from contextlib import AsyncExitStack
from typing import Any

from ..errors import ConnectionSetupError, RealtalkError
from ..session.base import SessionBroker
from ..transcript import Message, MessageListDelta, TranscriptReconciler
from .base import ConnectionState, Microphone, RealtimeTransport, TransportHandlers

logger = logging.getLogger(__name__)

INITIAL_RESPONSE_REQUEST = {"type": "response.create"}
CONNECTION_LOST_MESSAGE = "The connection to the agent was lost."
_FAILED_TRANSPORT_STATES = frozenset({"failed", "disconnected"})


class RealtimeAgent:
    """Connects to the realtime API and keeps the transcript up to date.

    Example:
        agent = RealtimeAgent(broker, lambda: WebRTCTransport(url), MediaPlayerMicrophone())
        if await agent.connect():
            ...
        transcript = await agent.disconnect()
    """

    def __init__(
        self,
        broker: SessionBroker,
        transport_factory: Callable[[], RealtimeTransport],
        microphone: Microphone | None = None,
        reconciler: TranscriptReconciler | None = None,
        on_update: Callable[["RealtimeAgent"], None] | None = None,
    ):
        """Initialize the agent.

        Args:
            broker: Source of session descriptors
            transport_factory: Creates a fresh transport for each connection
            microphone: Audio source (None connects receive-only)
            reconciler: Transcript reconciler (default: a new one)
            on_update: Called after every state or transcript change
        """
        self._broker = broker
        self._transport_factory = transport_factory
        self._microphone = microphone
        self._reconciler = reconciler or TranscriptReconciler()
        self._on_update = on_update

        self._state = ConnectionState.IDLE
        self._error: str | None = None
        self._status_message = ""
        self._stack: AsyncExitStack | None = None
        self._transport: RealtimeTransport | None = None
        self._teardown: asyncio.Task[None] | None = None
        self._response_requested = False
        self._last_transcript: tuple[Message, ...] = ()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def error(self) -> str | None:
        """The one human-readable error currently shown to the user."""
        return self._error

    @property
    def status_message(self) -> str:
        return self._status_message

    @property
    def messages(self) -> tuple[Message, ...]:
        """Snapshot of the live transcript."""
        return self._reconciler.messages

    @property
    def last_transcript(self) -> tuple[Message, ...]:
        """Transcript captured at the last teardown."""
        return self._last_transcript

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self)

    def _set_state(self, state: ConnectionState, status: str | None = None) -> None:
        self._state = state
        if status is not None:
            self._status_message = status
        self._notify()

    def _set_status(self, status: str) -> None:
        self._status_message = status
        self._notify()

    async def connect(self) -> bool:
        """Open the microphone, fetch a session and connect the transport.

        Does nothing if a connection is already being set up or established.

        Returns:
            True if the connection was established
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return self._state is ConnectionState.CONNECTED

        await self.wait_closed()

        self._error = None
        self._reconciler.reset()
        self._response_requested = False
        self._last_transcript = ()
        self._set_state(ConnectionState.CONNECTING, "Accessing the microphone...")

        stack = AsyncExitStack()
        self._stack = stack
        try:
            audio_track = None
            if self._microphone is not None:
                audio_track = await stack.enter_async_context(self._microphone)

            self._set_status("Requesting a session...")
            session = await self._broker.create_session()

            transport = self._transport_factory()
            stack.push_async_callback(transport.close)
            self._transport = transport

            self._set_status("Connecting to the agent...")
            await transport.connect(
                session,
                audio_track,
                TransportHandlers(
                    on_open=self._on_channel_open,
                    on_message=self.handle_frame,
                    on_state_change=self._on_transport_state,
                ),
            )
        except RealtalkError as e:
            logger.error("Connection setup failed: %s", e)
            await self._fail_setup(e.user_message)
            return False
        except Exception:
            logger.exception("Connection setup failed")
            await self._fail_setup(ConnectionSetupError.default_message)
            return False
        except BaseException:
            await self._release()
            self._state = ConnectionState.IDLE
            raise

        if self._state is ConnectionState.ERROR:
            # The transport failed while the answer was being applied
            return False

        self._set_state(ConnectionState.CONNECTED, "Connected. You can start talking.")
        return True

    async def _fail_setup(self, message: str) -> None:
        self._error = message
        await self._release()
        self._set_state(ConnectionState.ERROR, "")

    async def _release(self) -> None:
        """Close the transport and the microphone, if held."""
        stack, self._stack = self._stack, None
        self._transport = None
        if stack is not None:
            await stack.aclose()

    def _teardown_session(self) -> None:
        self._last_transcript = self._reconciler.messages
        self._reconciler.reset()
        self._response_requested = False

    async def disconnect(self) -> tuple[Message, ...]:
        """Tear the session down and clear the transcript.

        Returns:
            The transcript as it was just before teardown
        """
        await self.wait_closed()
        await self._release()
        # In the error state the session has already been torn down
        if self._state is not ConnectionState.ERROR:
            self._teardown_session()
        self._set_state(ConnectionState.IDLE, "Connection closed.")
        return self._last_transcript

    async def wait_closed(self) -> None:
        """Wait for a teardown triggered by a transport failure to finish."""
        if self._teardown is not None:
            await self._teardown

    def handle_frame(self, frame: str | bytes | dict[str, Any]) -> MessageListDelta:
        """Feed one event channel frame to the reconciler."""
        delta = self._reconciler.ingest(frame)
        if delta.error is not None:
            self._error = delta.error
        if delta.changed or delta.error is not None:
            self._notify()
        return delta

    def _on_channel_open(self) -> None:
        self._status_message = "Started talking to the agent."
        if not self._response_requested and self._transport is not None:
            try:
                self._transport.send(INITIAL_RESPONSE_REQUEST)
                self._response_requested = True
            except RuntimeError as e:
                logger.error("Failed to request the first response: %s", e)
                self._error = "Failed to start the conversation."
        self._notify()

    def _on_transport_state(self, transport_state: str) -> None:
        self._status_message = f"Connection state: {transport_state}"

        if transport_state == "connected" and self._state is ConnectionState.CONNECTING:
            self._set_state(ConnectionState.CONNECTED)
            return

        if transport_state in _FAILED_TRANSPORT_STATES and self._state in (
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
        ):
            logger.warning("Transport %s, tearing the session down", transport_state)
            self._error = CONNECTION_LOST_MESSAGE
            self._state = ConnectionState.ERROR
            self._teardown = asyncio.get_running_loop().create_task(self._teardown_after_failure())
        self._notify()

    async def _teardown_after_failure(self) -> None:
        try:
            await self._release()
            self._teardown_session()
            self._notify()
        finally:
            self._teardown = None
