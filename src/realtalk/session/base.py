from abc import ABC, abstractmethod
from typing import Any

from .models import SessionDescriptor


class SessionBroker(ABC):
    """Abstract source of realtime session descriptors.

    This module hides where sessions come from. Implementations handle:
    - Authentication against the realtime API or the broker service
    - Request/response format conversion
    - Validation of the returned descriptor

    Supports async context manager protocol for proper resource cleanup:
        async with broker:
            session = await broker.create_session()
    """

    @abstractmethod
    async def create_session(self) -> SessionDescriptor:
        """Create a short-lived session.

        Returns:
            SessionDescriptor with id, model and client secret

        Raises:
            SessionError: If no session could be created
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""
        pass

    @property
    @abstractmethod
    def broker_type(self) -> str:
        """Get the broker type identifier."""

    async def __aenter__(self) -> "SessionBroker":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
