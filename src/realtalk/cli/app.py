"""Main CLI application using Typer."""
import asyncio
import logging
import os
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.markup import escape

from ..config import Settings
from ..connection import ConnectionState, RealtimeAgent
from ..transcript import TranscriptReconciler
from .providers import get_broker, get_microphone, get_transport
from .render import render_agent, render_transcript

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="realtalk",
    help="Talk to a realtime voice agent and watch the transcript as it streams",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (default: LOG_LEVEL or WARNING)"
    )
):
    """Configure logging for every command."""
    level = (log_level or os.getenv("LOG_LEVEL") or "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _load_settings() -> Settings:
    """Read settings from the environment, exiting cleanly on bad values."""
    try:
        return Settings.from_env()
    except ValueError as e:
        console.print(f"[red]Error: invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default: SERVER_HOST)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default: SERVER_PORT)"),
):
    """Run the session broker that issues ephemeral client secrets."""
    import uvicorn

    from ..session.server import create_app

    settings = _load_settings()
    if not settings.openai_api_key:
        console.print("[yellow]Warning: OPENAI_API_KEY is not set; session requests will fail[/yellow]")

    bind_host = host or settings.server_host
    bind_port = port or settings.server_port
    console.print(f"[green]Session broker running on http://{bind_host}:{bind_port}[/green]")
    uvicorn.run(create_app(settings), host=bind_host, port=bind_port, log_level=settings.log_level.lower())


@app.command()
def connect(
    broker_url: str = typer.Option(
        None,
        "--broker-url",
        "-b",
        help="Session broker URL (default: REALTALK_BROKER_URL)"
    ),
    direct: bool = typer.Option(
        False,
        "--direct",
        help="Create the session with OPENAI_API_KEY instead of asking a broker"
    ),
    device: str = typer.Option(None, "--device", "-d", help="Capture device name"),
    format: str = typer.Option(None, "--format", "-f", help="Capture backend (pulse, alsa, avfoundation, dshow)"),
    listen_only: bool = typer.Option(
        False,
        "--listen-only",
        help="Do not open the microphone"
    ),
):
    """Connect to the agent and show the live transcript (Ctrl+C to stop)."""
    settings = _load_settings()
    if broker_url:
        settings = settings.model_copy(update={"broker_url": broker_url})

    async def _connect():
        broker = get_broker(settings, direct=direct, console=console)
        microphone = None if listen_only else get_microphone(device, format)
        live = Live(console=console, refresh_per_second=8, transient=True)

        agent = RealtimeAgent(
            broker=broker,
            transport_factory=lambda: get_transport(settings),
            microphone=microphone,
            on_update=lambda a: live.update(render_agent(a)),
        )

        try:
            with live:
                if await agent.connect():
                    while agent.state is ConnectionState.CONNECTED:
                        await asyncio.sleep(0.25)
                    await agent.wait_closed()
        except asyncio.CancelledError:
            pass
        finally:
            error = agent.error
            transcript = await agent.disconnect()
            await broker.close()

        console.print(render_transcript(transcript, error=error))
        if error:
            raise typer.Exit(code=1)

    try:
        asyncio.run(_connect())
    except KeyboardInterrupt:
        console.print("\n[dim]Goodbye![/dim]")


@app.command()
def replay(
    events_file: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        help="JSON-lines file of recorded event frames"
    ),
):
    """Fold a recorded event stream into a transcript."""
    reconciler = TranscriptReconciler()
    total = dropped = ignored = 0

    with events_file.open("rb") as f:
        for line in f:
            frame = line.strip()
            if not frame:
                continue
            total += 1
            delta = reconciler.ingest(frame)
            dropped += delta.dropped
            ignored += delta.ignored

    console.print(render_transcript(reconciler.messages, error=reconciler.error))
    console.print(
        f"[dim]{total} events, {len(reconciler.messages)} messages, "
        f"{dropped} dropped, {ignored} ignored[/dim]"
    )


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
