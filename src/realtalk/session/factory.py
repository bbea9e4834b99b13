from typing import Any

from .base import SessionBroker
from .providers import HTTPSessionBroker, OpenAISessionBroker


def create_session_broker(kind: str, **config: Any) -> SessionBroker:
    """Create a session broker instance.

    Args:
        kind: Broker type ('openai' or 'http')
        **config: Broker-specific configuration
            For OpenAI:
                - api_key: str | None (required, may be None until used)
                - model, instructions, voice, modalities, base_url
            For HTTP:
                - broker_url: str (required)

    Returns:
        Initialized session broker

    Raises:
        ValueError: If broker type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> broker = create_session_broker("http", broker_url="http://localhost:3001")
    """
    kind_lower = kind.lower()

    if kind_lower == "openai":
        if "api_key" not in config:
            raise TypeError("OpenAI broker requires 'api_key' in config")
        return OpenAISessionBroker(**config)

    if kind_lower == "http":
        if "broker_url" not in config:
            raise TypeError("HTTP broker requires 'broker_url' in config")
        return HTTPSessionBroker(**config)

    raise ValueError(
        f"Unsupported session broker: {kind}. "
        f"Supported brokers: 'openai', 'http'"
    )
