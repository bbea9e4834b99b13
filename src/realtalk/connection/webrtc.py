"""aiortc implementations of the microphone and transport interfaces."""

import json
import logging
import platform
from typing import Any

import httpx
from aiortc import RTCPeerConnection, RTCSessionDescription
from aiortc.contrib.media import MediaBlackhole, MediaPlayer

from ..config import EVENTS_CHANNEL_LABEL
from ..errors import MicrophoneError, NegotiationError
from ..session.models import SessionDescriptor
from .base import Microphone, RealtimeTransport, TransportHandlers

logger = logging.getLogger(__name__)

# Capture backend per platform, as understood by ffmpeg / PyAV
_CAPTURE_BACKENDS = {
    "Linux": ("default", "pulse"),
    "Darwin": (":default", "avfoundation"),
    "Windows": ("audio=default", "dshow"),
}


def default_capture_device() -> tuple[str, str | None]:
    """Return the (device, format) pair for the platform's default microphone."""
    return _CAPTURE_BACKENDS.get(platform.system(), ("default", None))


class MediaPlayerMicrophone(Microphone):
    """Microphone captured through aiortc's MediaPlayer (PyAV / ffmpeg)."""

    def __init__(
        self,
        device: str | None = None,
        format: str | None = None,
        options: dict[str, str] | None = None,
    ):
        default_device, default_format = default_capture_device()
        self._device = device or default_device
        self._format = format if format is not None else (None if device else default_format)
        self._options = options or {}
        self._player: MediaPlayer | None = None

    async def open(self) -> Any:
        try:
            self._player = MediaPlayer(self._device, format=self._format, options=self._options)
        except Exception as e:
            raise MicrophoneError(
                f"Could not access the microphone ({self._device}): {e}"
            ) from e

        if self._player.audio is None:
            self._player = None
            raise MicrophoneError(f"No audio stream on {self._device}")
        return self._player.audio

    async def close(self) -> None:
        if self._player is not None and self._player.audio is not None:
            self._player.audio.stop()
        self._player = None


class WebRTCTransport(RealtimeTransport):
    """Realtime API connection over a WebRTC peer connection.

    Hidden design decisions:
    - SDP offer/answer exchange over HTTP with the ephemeral key
    - The events data channel label
    - What happens to the remote audio (consumed by a sink)
    """

    def __init__(
        self,
        realtime_url: str,
        http_client: httpx.AsyncClient | None = None,
        audio_sink: Any = None,
        timeout: float = 30.0,
    ):
        """Initialize the transport.

        Args:
            realtime_url: Endpoint accepting the SDP offer
            http_client: Optional preconfigured client
            audio_sink: Consumer of remote audio (default: MediaBlackhole)
            timeout: SDP exchange timeout in seconds
        """
        self._realtime_url = realtime_url
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._sink = audio_sink or MediaBlackhole()
        self._pc: RTCPeerConnection | None = None
        self._channel = None
        self._closed = False

    async def connect(
        self,
        session: SessionDescriptor,
        audio_track: Any,
        handlers: TransportHandlers,
    ) -> None:
        pc = RTCPeerConnection()
        self._pc = pc

        @pc.on("connectionstatechange")
        def on_connection_state_change() -> None:
            handlers.on_state_change(pc.connectionState)

        @pc.on("track")
        def on_track(track: Any) -> None:
            if track.kind == "audio":
                self._sink.addTrack(track)

        if audio_track is not None:
            pc.addTrack(audio_track)
        else:
            pc.addTransceiver("audio", direction="recvonly")

        channel = pc.createDataChannel(EVENTS_CHANNEL_LABEL)
        self._channel = channel

        @channel.on("open")
        def on_open() -> None:
            handlers.on_open()

        @channel.on("message")
        def on_message(message: str | bytes) -> None:
            handlers.on_message(message)

        offer = await pc.createOffer()
        await pc.setLocalDescription(offer)

        try:
            response = await self._client.post(
                self._realtime_url,
                params={"model": session.model},
                headers={
                    "Authorization": f"Bearer {session.client_secret.value}",
                    "Content-Type": "application/sdp",
                },
                content=pc.localDescription.sdp,
            )
        except httpx.HTTPError as e:
            raise NegotiationError() from e

        if not response.is_success:
            logger.error("SDP exchange failed (%s): %s", response.status_code, response.text)
            raise NegotiationError(status_code=response.status_code)

        await pc.setRemoteDescription(RTCSessionDescription(sdp=response.text, type="answer"))
        await self._sink.start()

    def send(self, payload: dict[str, Any]) -> None:
        if self._channel is None or self._channel.readyState != "open":
            raise RuntimeError("Event channel is not open")
        self._channel.send(json.dumps(payload))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._channel is not None:
            try:
                self._channel.close()
            except Exception as e:
                logger.warning("Failed to close the data channel: %s", e)
            self._channel = None

        if self._pc is not None:
            try:
                await self._pc.close()
            except Exception as e:
                logger.warning("Failed to close the peer connection: %s", e)
            self._pc = None

        await self._sink.stop()
        if self._owns_client:
            await self._client.aclose()
