"""Runtime configuration.

Centralizes environment variables and defaults. Values are read when
`Settings.from_env()` is called, so a `.env` file loaded beforehand is honored.
"""

import os

from pydantic import BaseModel, Field

DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview-2024-12-17"
DEFAULT_INSTRUCTIONS = "You are a friendly voice assistant. Keep your answers short and easy to follow."
DEFAULT_VOICE = "alloy"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"

# Label of the data channel the realtime API sends events on
EVENTS_CHANNEL_LABEL = "oai-events"


class Settings(BaseModel):
    """realtalk settings."""

    openai_api_key: str | None = Field(default=None, description="Long-lived API key (broker only)")
    realtime_model: str = Field(default=DEFAULT_REALTIME_MODEL)
    instructions: str = Field(default=DEFAULT_INSTRUCTIONS)
    voice: str = Field(default=DEFAULT_VOICE)
    modalities: list[str] = Field(default_factory=lambda: ["text", "audio"])
    openai_base_url: str = Field(default=DEFAULT_OPENAI_BASE_URL)
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=3001, ge=1, le=65535)
    broker_url: str = Field(default="http://localhost:3001")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="WARNING")

    @property
    def realtime_url(self) -> str:
        """Endpoint that accepts the SDP offer."""
        return f"{self.openai_base_url.rstrip('/')}/realtime"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Environment variables:
            OPENAI_API_KEY: API key used by the session broker
            OPENAI_REALTIME_MODEL: Realtime model name
            AGENT_INSTRUCTIONS: System instructions for the agent
            AGENT_VOICE: Voice used for audio responses
            OPENAI_BASE_URL: API base URL
            SERVER_HOST / SERVER_PORT: Session broker bind address
            REALTALK_BROKER_URL: Where clients fetch sessions from
            CORS_ORIGINS: Comma separated allowed origins, or "*"
            LOG_LEVEL: Logging level name
        """
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            realtime_model=os.getenv("OPENAI_REALTIME_MODEL", DEFAULT_REALTIME_MODEL),
            instructions=os.getenv("AGENT_INSTRUCTIONS", DEFAULT_INSTRUCTIONS),
            voice=os.getenv("AGENT_VOICE", DEFAULT_VOICE),
            openai_base_url=os.getenv("OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL),
            server_host=os.getenv("SERVER_HOST", "0.0.0.0"),
            server_port=int(os.getenv("SERVER_PORT", "3001")),
            broker_url=os.getenv("REALTALK_BROKER_URL", "http://localhost:3001"),
            cors_origins=["*"] if origins == "*" else [o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        )
