import logging

import httpx
from pydantic import ValidationError

from ...errors import InvalidSessionError, SessionFetchError
from ..base import SessionBroker
from ..models import SessionDescriptor

logger = logging.getLogger(__name__)

SESSION_PATH = "/api/session"


class HTTPSessionBroker(SessionBroker):
    """Fetches sessions from a realtalk broker service.

    This is what clients use: they never see the long-lived API key, only
    the ephemeral client secret returned by ``POST /api/session``.
    """

    def __init__(
        self,
        broker_url: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        """Initialize the broker client.

        Args:
            broker_url: Base URL of the broker service
            http_client: Optional preconfigured client
            timeout: Request timeout in seconds
        """
        self._url = f"{broker_url.rstrip('/')}{SESSION_PATH}"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def broker_type(self) -> str:
        return "http"

    async def create_session(self) -> SessionDescriptor:
        try:
            response = await self._client.post(self._url)
        except httpx.HTTPError as e:
            logger.error("Session request to %s failed: %s", self._url, e)
            raise SessionFetchError() from e

        if not response.is_success:
            message = None
            try:
                body = response.json()
                if isinstance(body, dict) and isinstance(body.get("error"), str):
                    message = body["error"]
            except ValueError:
                pass
            raise SessionFetchError(message, status_code=response.status_code)

        try:
            return SessionDescriptor.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error("Invalid session payload: %s", e)
            raise InvalidSessionError() from e

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
