"""Display sinks: where the client's presentation events go.

The client only ever calls ``emit``; a sink never talks back.
"""

import asyncio
from abc import ABC, abstractmethod

import click

from .core import DisplayEvent


class DisplaySink(ABC):
    """Receives presentation events and renders them somehow."""

    @abstractmethod
    def emit(self, event: DisplayEvent) -> None:
        """Render one event. Must not block on I/O."""
        ...


class CollectingSink(DisplaySink):
    """Keeps every event in order."""

    def __init__(self):
        self.events: list[DisplayEvent] = []

    def emit(self, event: DisplayEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [e.type for e in self.events]


class QueueSink(DisplaySink):
    """Forwards events into an asyncio queue for a consumer task."""

    def __init__(self, queue: "asyncio.Queue[DisplayEvent] | None" = None):
        self.queue: asyncio.Queue[DisplayEvent] = queue or asyncio.Queue()

    def emit(self, event: DisplayEvent) -> None:
        self.queue.put_nowait(event)


class ConsoleSink(DisplaySink):
    """Renders a conversation in the terminal."""

    def __init__(self, echo_user: bool = False):
        self.echo_user = echo_user
        self._status_shown = False
        self._in_reply = False

    def emit(self, event: DisplayEvent) -> None:
        handler = getattr(self, f"_on_{event.type}", None)
        if handler:
            handler(event)

    def _clear_status(self):
        if self._status_shown:
            # Overwrite the transient status line.
            click.echo("\r\033[K", nl=False, err=True)
            self._status_shown = False

    def _show_status(self, text: str):
        self._clear_status()
        click.echo(click.style(text, dim=True), nl=False, err=True)
        self._status_shown = True

    def _on_cookieStatus(self, event: DisplayEvent):
        if not event.has_cookie:
            click.echo(
                click.style(
                    'No session cookie set. Run "claude-webchat set-cookie" first.',
                    fg="yellow",
                ),
                err=True,
            )

    def _on_userMessage(self, event: DisplayEvent):
        if self.echo_user:
            click.echo(click.style("You: ", fg="cyan", bold=True) + (event.text or ""))

    def _on_thinking(self, event: DisplayEvent):
        self._show_status("Thinking...")

    def _on_status(self, event: DisplayEvent):
        self._show_status(event.text or "")

    def _on_startAssistantMessage(self, event: DisplayEvent):
        self._clear_status()
        self._in_reply = True
        click.echo(click.style("Claude: ", fg="magenta", bold=True), nl=False)

    def _on_chunk(self, event: DisplayEvent):
        click.echo(event.text or "", nl=False)

    def _on_done(self, event: DisplayEvent):
        self._clear_status()
        self._in_reply = False
        click.echo()

    def _on_error(self, event: DisplayEvent):
        self._clear_status()
        if self._in_reply:
            click.echo()
            self._in_reply = False
        click.echo(click.style(event.text or "Error", fg="red"), err=True)

    def _on_clearChat(self, event: DisplayEvent):
        click.echo(click.style("New conversation started", dim=True))
