"""Pytest configuration and shared fixtures."""
import json
import os
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from realtalk.connection import Microphone, RealtimeTransport, TransportHandlers
from realtalk.session import SessionBroker, SessionDescriptor
from realtalk.transcript import TranscriptReconciler


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {"openai": os.getenv("OPENAI_API_KEY")}


@pytest.fixture
def clock():
    """Deterministic clock advancing one second per call."""
    start = datetime(2024, 12, 17, 9, 0, 0, tzinfo=timezone.utc)
    calls = {"n": 0}

    def tick() -> datetime:
        value = start + timedelta(seconds=calls["n"])
        calls["n"] += 1
        return value

    return tick


@pytest.fixture
def reconciler(clock):
    """Create a reconciler with a deterministic clock."""
    return TranscriptReconciler(clock=clock)


@pytest.fixture
def session_payload():
    """Return a session descriptor as returned by the realtime API."""
    return {
        "id": "sess_001",
        "object": "realtime.session",
        "model": "gpt-4o-realtime-preview-2024-12-17",
        "client_secret": {"value": "ek_test_secret", "expires_at": 1734426000},
    }


@pytest.fixture
def session(session_payload):
    return SessionDescriptor.model_validate(session_payload)


def frame(event_type: str, **fields: Any) -> str:
    """Encode an event as a data channel frame."""
    return json.dumps({"type": event_type, **fields})


class FakeBroker(SessionBroker):
    """Session broker returning a canned session or raising an error."""

    def __init__(self, session: SessionDescriptor | None = None, error: Exception | None = None):
        self.session = session
        self.error = error
        self.calls = 0
        self.closed = False

    async def create_session(self) -> SessionDescriptor:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.session

    async def close(self) -> None:
        self.closed = True

    @property
    def broker_type(self) -> str:
        return "fake"


class FakeMicrophone(Microphone):
    """Microphone that records open/close calls."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.opened = 0
        self.closed = 0

    async def open(self) -> Any:
        if self.error is not None:
            raise self.error
        self.opened += 1
        return "audio-track"

    async def close(self) -> None:
        self.closed += 1


class FakeTransport(RealtimeTransport):
    """Transport that exposes the handlers so tests can drive events."""

    def __init__(self, error: Exception | None = None, open_on_connect: bool = True):
        self.error = error
        self.open_on_connect = open_on_connect
        self.handlers: TransportHandlers | None = None
        self.session: SessionDescriptor | None = None
        self.audio_track: Any = None
        self.sent: list[dict[str, Any]] = []
        self.closed = 0

    async def connect(self, session, audio_track, handlers) -> None:
        self.session = session
        self.audio_track = audio_track
        self.handlers = handlers
        if self.error is not None:
            raise self.error
        if self.open_on_connect:
            handlers.on_open()

    def send(self, payload: dict[str, Any]) -> None:
        self.sent.append(payload)

    async def close(self) -> None:
        self.closed += 1
