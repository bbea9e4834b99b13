import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ...config import DEFAULT_INSTRUCTIONS, DEFAULT_OPENAI_BASE_URL, DEFAULT_REALTIME_MODEL, DEFAULT_VOICE
from ...errors import MissingAPIKeyError, SessionError, UpstreamSessionError
from ..base import SessionBroker
from ..models import SessionDescriptor

logger = logging.getLogger(__name__)


class OpenAISessionBroker(SessionBroker):
    """Creates ephemeral sessions directly against the OpenAI Realtime API.

    Hidden design decisions:
    - Realtime sessions endpoint and beta header
    - Session request body (model, voice, instructions, modalities)
    - Upstream error mapping
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_REALTIME_MODEL,
        instructions: str = DEFAULT_INSTRUCTIONS,
        voice: str = DEFAULT_VOICE,
        modalities: list[str] | None = None,
        base_url: str = DEFAULT_OPENAI_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        """Initialize the broker.

        Args:
            api_key: Long-lived OpenAI API key (checked on each request)
            model: Realtime model to bind the session to
            instructions: System instructions for the agent
            voice: Voice used for audio output
            modalities: Response modalities (default: text and audio)
            base_url: API base URL
            http_client: Optional preconfigured client (tests, proxies)
            timeout: Request timeout in seconds
        """
        self._api_key = api_key
        self._model = model
        self._instructions = instructions
        self._voice = voice
        self._modalities = modalities or ["text", "audio"]
        self._url = f"{base_url.rstrip('/')}/realtime/sessions"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def model(self) -> str:
        return self._model

    @property
    def broker_type(self) -> str:
        return "openai"

    def _request_body(self) -> dict[str, Any]:
        return {
            "model": self._model,
            "voice": self._voice,
            "instructions": self._instructions,
            "modalities": self._modalities,
        }

    async def create_session(self) -> SessionDescriptor:
        if not self._api_key:
            raise MissingAPIKeyError()

        try:
            response = await self._client.post(
                self._url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                    "OpenAI-Beta": "realtime=v1",
                },
                json=self._request_body(),
            )
        except httpx.HTTPError as e:
            raise SessionError(f"Failed to reach the realtime API: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {"body": response.text}

        if not response.is_success:
            logger.error("Realtime session API error (%s): %s", response.status_code, payload)
            raise UpstreamSessionError(response.status_code, details=payload)

        try:
            return SessionDescriptor.model_validate(payload)
        except ValidationError as e:
            raise SessionError(f"Unexpected session payload: {e}") from e

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
