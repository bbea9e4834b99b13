"""Unit tests for the session module."""
import json

import httpx
import pytest
from pydantic import ValidationError

from realtalk.errors import (
    ConnectionSetupError,
    InvalidSessionError,
    MissingAPIKeyError,
    SessionError,
    SessionFetchError,
    UpstreamSessionError,
)
from realtalk.session import (
    HTTPSessionBroker,
    OpenAISessionBroker,
    SessionBroker,
    SessionDescriptor,
    create_session_broker,
)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestSessionDescriptor:
    """Tests for SessionDescriptor model."""

    def test_parse_realtime_payload(self, session_payload):
        session = SessionDescriptor.model_validate(session_payload)
        assert session.id == "sess_001"
        assert session.client_secret.value == "ek_test_secret"

    def test_public_payload_passes_through_id_model_secret(self, session_payload):
        session = SessionDescriptor.model_validate(session_payload)
        assert session.public_payload() == {
            "id": "sess_001",
            "model": "gpt-4o-realtime-preview-2024-12-17",
            "client_secret": {"value": "ek_test_secret", "expires_at": 1734426000},
        }

    def test_empty_secret_is_invalid(self):
        with pytest.raises(ValidationError):
            SessionDescriptor.model_validate({"id": "s", "model": "m", "client_secret": {"value": ""}})


class TestSessionBroker:
    """Tests for SessionBroker interface."""

    def test_broker_is_abstract(self):
        with pytest.raises(TypeError):
            SessionBroker()  # type: ignore


class TestOpenAISessionBroker:
    """Tests for OpenAISessionBroker."""

    @pytest.mark.asyncio
    async def test_create_session_request(self, session_payload):
        """Test the request sent to the realtime sessions endpoint."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=session_payload)

        broker = OpenAISessionBroker(
            api_key="sk-test",
            model="gpt-4o-realtime-preview-2024-12-17",
            instructions="Be brief.",
            http_client=mock_client(handler),
        )
        session = await broker.create_session()

        assert session.client_secret.value == "ek_test_secret"
        assert seen["url"] == "https://api.openai.com/v1/realtime/sessions"
        assert seen["headers"]["Authorization"] == "Bearer sk-test"
        assert seen["headers"]["OpenAI-Beta"] == "realtime=v1"
        assert seen["body"] == {
            "model": "gpt-4o-realtime-preview-2024-12-17",
            "voice": "alloy",
            "instructions": "Be brief.",
            "modalities": ["text", "audio"],
        }

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        broker = OpenAISessionBroker(api_key=None, http_client=mock_client(lambda r: httpx.Response(200)))
        with pytest.raises(MissingAPIKeyError, match="OPENAI_API_KEY"):
            await broker.create_session()

    @pytest.mark.asyncio
    async def test_upstream_error_keeps_status_and_details(self):
        details = {"error": {"message": "Invalid model"}}
        broker = OpenAISessionBroker(
            api_key="sk-test",
            http_client=mock_client(lambda r: httpx.Response(400, json=details)),
        )
        with pytest.raises(UpstreamSessionError) as exc_info:
            await broker.create_session()

        assert exc_info.value.status_code == 400
        assert exc_info.value.details == details

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        broker = OpenAISessionBroker(api_key="sk-test", http_client=mock_client(handler))
        with pytest.raises(SessionError, match="Failed to reach"):
            await broker.create_session()

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self, session_payload):
        client = mock_client(lambda r: httpx.Response(200, json=session_payload))
        async with OpenAISessionBroker(api_key="sk-test", http_client=client) as broker:
            await broker.create_session()
        assert not client.is_closed
        await client.aclose()


class TestHTTPSessionBroker:
    """Tests for HTTPSessionBroker."""

    @pytest.mark.asyncio
    async def test_fetch_session(self, session_payload):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            return httpx.Response(200, json=session_payload)

        broker = HTTPSessionBroker("http://broker.local:3001/", http_client=mock_client(handler))
        session = await broker.create_session()

        assert seen == {"method": "POST", "url": "http://broker.local:3001/api/session"}
        assert session.model == "gpt-4o-realtime-preview-2024-12-17"

    @pytest.mark.asyncio
    async def test_error_body_is_surfaced(self):
        body = {"error": "OPENAI_API_KEY is not set."}
        broker = HTTPSessionBroker(
            "http://broker.local",
            http_client=mock_client(lambda r: httpx.Response(500, json=body)),
        )
        with pytest.raises(SessionFetchError) as exc_info:
            await broker.create_session()

        assert exc_info.value.user_message == "OPENAI_API_KEY is not set."
        assert exc_info.value.status_code == 500
        assert isinstance(exc_info.value, ConnectionSetupError)

    @pytest.mark.asyncio
    async def test_non_json_error_uses_default_message(self):
        broker = HTTPSessionBroker(
            "http://broker.local",
            http_client=mock_client(lambda r: httpx.Response(502, text="Bad Gateway")),
        )
        with pytest.raises(SessionFetchError, match="Failed to fetch a session"):
            await broker.create_session()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"id": "s", "model": "m"},
        {"id": "s", "model": "m", "client_secret": {}},
        {"id": "s", "model": "m", "client_secret": {"value": ""}},
    ])
    async def test_missing_client_secret_is_invalid(self, payload):
        broker = HTTPSessionBroker(
            "http://broker.local",
            http_client=mock_client(lambda r: httpx.Response(200, json=payload)),
        )
        with pytest.raises(InvalidSessionError):
            await broker.create_session()

    @pytest.mark.asyncio
    async def test_unreachable_broker(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        broker = HTTPSessionBroker("http://broker.local", http_client=mock_client(handler))
        with pytest.raises(SessionFetchError):
            await broker.create_session()


class TestSessionFactory:
    """Tests for session broker factory."""

    def test_create_http_broker(self):
        broker = create_session_broker("http", broker_url="http://localhost:3001")
        assert isinstance(broker, HTTPSessionBroker)
        assert broker.broker_type == "http"

    def test_create_openai_broker(self):
        broker = create_session_broker("OpenAI", api_key="sk-test", model="gpt-4o-realtime-preview")
        assert isinstance(broker, OpenAISessionBroker)
        assert broker.model == "gpt-4o-realtime-preview"

    def test_missing_required_config(self):
        with pytest.raises(TypeError, match="broker_url"):
            create_session_broker("http")
        with pytest.raises(TypeError, match="api_key"):
            create_session_broker("openai")

    def test_unknown_broker(self):
        with pytest.raises(ValueError, match="Unsupported session broker"):
            create_session_broker("carrier-pigeon")
