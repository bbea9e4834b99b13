"""Terminal rendering of the transcript.

Hides how messages, status and errors are laid out with Rich.
"""

from collections.abc import Iterable

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.text import Text

from ..connection import ConnectionState, RealtimeAgent
from ..transcript import Message, Role

TIMESTAMP_FORMAT = "%H:%M:%S"
STREAMING_MARKER = " …"
PLACEHOLDER = "No conversation yet. Start talking to the agent."

_ROLE_LABELS = {Role.USER: "You", Role.ASSISTANT: "Agent"}
_ROLE_STYLES = {Role.USER: "cyan", Role.ASSISTANT: "green"}
_STATE_STYLES = {
    ConnectionState.IDLE: "dim",
    ConnectionState.CONNECTING: "yellow",
    ConnectionState.CONNECTED: "green",
    ConnectionState.ERROR: "red",
}


def role_label(role: Role) -> str:
    return _ROLE_LABELS[role]


def render_message(message: Message) -> Text:
    """Render one turn as `[time] Label: text`, marking streaming turns."""
    style = _ROLE_STYLES[message.role]
    line = Text(overflow="fold")
    line.append(f"[{message.timestamp.astimezone().strftime(TIMESTAMP_FORMAT)}] ", style="dim")
    line.append(f"{role_label(message.role)}: ", style=f"bold {style}")
    line.append(message.text)
    if message.is_streaming:
        line.append(STREAMING_MARKER, style="dim")
    return line


def render_transcript(
    messages: Iterable[Message],
    error: str | None = None,
    status: str | None = None,
) -> RenderableType:
    """Render the transcript with an optional error and status line."""
    parts: list[RenderableType] = []
    if status:
        parts.append(Text(status, style="dim"))
    if error:
        parts.append(Panel(Text(error), title="Error", border_style="red"))

    lines = [render_message(message) for message in messages]
    if lines:
        parts.extend(lines)
    elif not error:
        parts.append(Text(PLACEHOLDER, style="dim italic"))
    return Group(*parts)


def render_agent(agent: RealtimeAgent) -> RenderableType:
    """Render the live view of a connected agent."""
    state = agent.state
    header = Text(f"● {state.value}", style=_STATE_STYLES[state])
    if agent.status_message:
        header.append(f"  {agent.status_message}", style="dim")
    return Group(header, render_transcript(agent.messages, error=agent.error))
