"""Data models for realtime sessions."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ClientSecret(BaseModel):
    """Short-lived credential authorizing one realtime connection."""

    model_config = ConfigDict(extra="allow")

    value: str = Field(min_length=1, description="Ephemeral key used as a bearer token")
    expires_at: int | None = Field(default=None, description="Unix time the secret expires")


class SessionDescriptor(BaseModel):
    """Session handed to clients by the broker."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = Field(description="Session id")
    model: str = Field(description="Realtime model the session is bound to")
    client_secret: ClientSecret

    def public_payload(self) -> dict[str, Any]:
        """Fields passed through to clients (id, model, client_secret)."""
        return {
            "id": self.id,
            "model": self.model,
            "client_secret": self.client_secret.model_dump(exclude_none=True),
        }


class SessionErrorBody(BaseModel):
    """Error payload returned by the broker endpoint."""

    error: str
    details: Any | None = None
