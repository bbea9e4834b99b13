"""Provider factory functions for CLI.

Centralizes creation of brokers, transports and microphones from settings.
Hides configuration details from command implementations.
"""

from rich.console import Console

from ..config import Settings
from ..connection import Microphone, RealtimeTransport
from ..session import SessionBroker, create_session_broker

# Default console for output
_console = Console()


def get_broker(settings: Settings, direct: bool = False, console: Console | None = None) -> SessionBroker:
    """Create the session broker the client fetches sessions from.

    Args:
        settings: Runtime settings
        direct: Talk to the realtime API directly instead of the broker service
        console: Optional Rich console for output

    Returns:
        Session broker instance

    Raises:
        typer.Exit: If --direct is used without OPENAI_API_KEY
    """
    import typer

    if not direct:
        return create_session_broker("http", broker_url=settings.broker_url)

    con = console or _console
    if not settings.openai_api_key:
        con.print("[red]Error: OPENAI_API_KEY not set in environment[/red]")
        raise typer.Exit(code=1)

    return create_session_broker(
        "openai",
        api_key=settings.openai_api_key,
        model=settings.realtime_model,
        instructions=settings.instructions,
        voice=settings.voice,
        modalities=settings.modalities,
        base_url=settings.openai_base_url,
    )


def get_transport(settings: Settings) -> RealtimeTransport:
    """Create a WebRTC transport for one connection."""
    from ..connection.webrtc import WebRTCTransport

    return WebRTCTransport(realtime_url=settings.realtime_url)


def get_microphone(device: str | None = None, format: str | None = None) -> Microphone:
    """Create the microphone source (platform default unless overridden)."""
    from ..connection.webrtc import MediaPlayerMicrophone

    return MediaPlayerMicrophone(device=device, format=format)
